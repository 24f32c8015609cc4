"""Visualization modules for tuning and prediction reports."""

from .plots import PipelinePlotter, write_figure

__all__ = ["PipelinePlotter", "write_figure"]
