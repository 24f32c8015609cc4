"""Plotting utilities for tuning and prediction output."""

from typing import Any, Dict, List
from pathlib import Path

from ..ml.predictor import PredictionResult
from ..ml.tuning import TuningResult


class PipelinePlotter:
    """Create plotly figures for pipeline reports."""

    ROUND_COLORS = {1: "steelblue", 2: "darkorange"}

    def plot_tuning_curve(
        self,
        tuning: TuningResult,
        title: str = "Cross-validated accuracy by max_features"
    ) -> Dict[str, Any]:
        """Plot mean accuracy (with std error bars) for both search rounds.

        Returns:
            Plotly figure dictionary.
        """
        import plotly.graph_objects as go

        fig = go.Figure()

        for round_no, results in ((1, tuning.round1_results), (2, tuning.round2_results)):
            ordered = sorted(results, key=lambda r: r.value)
            fig.add_trace(go.Scatter(
                x=[r.value for r in ordered],
                y=[r.mean_accuracy for r in ordered],
                error_y=dict(type="data", array=[r.std_accuracy for r in ordered], visible=True),
                mode="lines+markers",
                line=dict(color=self.ROUND_COLORS[round_no]),
                name=f"Round {round_no}",
                hovertemplate="max_features=%{x}<br>accuracy=%{y:.4f}"
            ))

        fig.add_vline(
            x=tuning.best_hyperparameter,
            line_dash="dash",
            line_color="gray",
            annotation_text=f"best={tuning.best_hyperparameter}"
        )

        fig.update_layout(
            title=title,
            xaxis_title="max_features",
            yaxis_title="Accuracy",
            showlegend=True
        )

        return fig.to_dict()

    def plot_score_distribution(
        self,
        results: List[PredictionResult],
        nbins: int = 20
    ) -> Dict[str, Any]:
        """Plot pathogenicity score distribution."""
        import plotly.graph_objects as go

        fig = go.Figure()
        fig.add_trace(go.Histogram(
            x=[r.score for r in results],
            xbins=dict(start=0.0, end=1.0, size=1.0 / nbins),
            marker_color="firebrick",
            name="Pathogenicity Scores"
        ))
        fig.add_vline(x=0.5, line_dash="dash", line_color="gray")

        fig.update_layout(
            title="Pathogenicity Score Distribution",
            xaxis_title="Score",
            yaxis_title="Count",
            xaxis=dict(range=[0, 1])
        )

        return fig.to_dict()


def write_figure(figure: Dict[str, Any], path: Path) -> Path:
    """Save a figure dictionary as a standalone HTML file."""
    import plotly.io as pio

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    pio.write_html(figure, str(path), include_plotlyjs="cdn")
    return path
