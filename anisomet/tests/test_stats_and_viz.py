import numpy as np
import pytest

from anisomet.core.metric import isotropic_metrics, metric_from_hessians
from anisomet.core.stats import ScalingStats, format_scaling_table


def test_scaling_stats_record():
    stats = ScalingStats(target_nelems=100.0, tolerance=0.01)
    assert stats.final_eps is None
    stats.record(1.0, 3.0)
    stats.record(1.0 / 3.0, 1.001)
    assert stats.iterations == 2
    assert stats.final_eps == pytest.approx(1.0 / 3.0)
    assert stats.final_scalar == pytest.approx(1.001)


def test_format_scaling_table():
    assert format_scaling_table(ScalingStats()) == "<no iterations>"
    stats = ScalingStats(target_nelems=10.0, tolerance=0.1)
    stats.record(1.0, 2.0)
    stats.record(0.5, 1.0)
    stats.converged = True
    lines = format_scaling_table(stats).splitlines()
    assert lines[0].split() == ["iter", "eps", "scalar", "|scalar-1|"]
    assert len(lines) == 2 + 2 + 1
    assert lines[-1].startswith("converged after 2 iterations")


def test_plot_metric_ellipses(tmp_path, box2d):
    pytest.importorskip('matplotlib')
    from anisomet.core.visualization import metric_ellipses, plot_metric_ellipses
    x = box2d.coords()[:, 0]
    hess = np.stack([100.0 * (1.0 + x), np.ones_like(x), np.zeros_like(x)], axis=1).reshape(-1)
    v2m = metric_from_hessians(2, hess, 0.1, 0.01, 0.5)
    out = tmp_path / 'metric.png'
    plot_metric_ellipses(box2d, v2m, outname=str(out), stride=2, title='test')
    assert out.exists() and out.stat().st_size > 0
    assert len(metric_ellipses(box2d.coords(), v2m, stride=2)) == (box2d.nverts() + 1) // 2


def test_ellipse_axes_match_sizes(box2d):
    pytest.importorskip('matplotlib')
    from anisomet.core.visualization import metric_ellipses
    v2m = isotropic_metrics(2, np.full(box2d.nverts(), 0.2))
    e = metric_ellipses(box2d.coords(), v2m)[0]
    assert e.width == pytest.approx(0.4)
    assert e.height == pytest.approx(0.4)
