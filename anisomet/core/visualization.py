"""Matplotlib rendering of 2D metric fields.

Each vertex metric is drawn as its unit ball: an ellipse whose semi-axes are
the principal directions scaled by the desired edge lengths.
"""
from __future__ import annotations

import os as _os
from typing import Optional

import matplotlib as _mpl
# Ensure a non-interactive backend in headless environments before importing pyplot
if not _os.environ.get('MPLBACKEND'):
    _mpl.use('Agg')
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import PatchCollection
from matplotlib.patches import Ellipse

from .errors import check
from .logging_utils import get_logger
from .metric import axes_from_metrics

logger = get_logger('anisomet.viz')


def metric_ellipses(coords, metrics, stride: int = 1):
    """Return matplotlib Ellipse patches for every ``stride``-th vertex metric."""
    pts = np.asarray(coords, dtype=np.float64)
    ax0, ax1 = (a.reshape(-1, 2) for a in axes_from_metrics(2, metrics, scale='length'))
    patches = []
    for v in range(0, pts.shape[0], max(1, int(stride))):
        angle = np.degrees(np.arctan2(ax0[v, 1], ax0[v, 0]))
        patches.append(Ellipse(xy=(pts[v, 0], pts[v, 1]),
                               width=2.0 * np.linalg.norm(ax0[v]),
                               height=2.0 * np.linalg.norm(ax1[v]),
                               angle=angle))
    return patches


def plot_metric_ellipses(mesh, metrics, outname: str = "metric.png", stride: int = 1,
                         title: Optional[str] = None, scale: float = 1.0):
    """Plot the triangulation of a 2D mesh with one metric ellipse per vertex.

    Args:
        mesh: 2D Mesh with coords() and ask_verts_of()
        metrics: vertex metric field (3 values per vertex)
        outname: output image path
        stride: draw every stride-th vertex only
        title: optional figure title
        scale: uniform factor applied to the ellipse size for legibility
    """
    check(mesh.dim() == 2, "metric ellipses are only drawn for 2D meshes")
    pts = np.asarray(mesh.coords())
    tris = np.asarray(mesh.ask_verts_of(2))
    patches = metric_ellipses(pts, np.asarray(metrics) / (scale * scale), stride=stride)
    fig, ax = plt.subplots(figsize=(7, 7))
    ax.triplot(pts[:, 0], pts[:, 1], tris, color='0.6', lw=0.4)
    coll = PatchCollection(patches, facecolor='none', edgecolor=(0.1, 0.3, 0.8), linewidth=0.6)
    ax.add_collection(coll)
    ax.set_aspect('equal')
    if title:
        ax.set_title(title)
    fig.savefig(outname, dpi=150)
    plt.close(fig)
    logger.info("saved metric plot with %d ellipses to %s", len(patches), outname)
    return outname


__all__ = ['metric_ellipses', 'plot_metric_ellipses']
