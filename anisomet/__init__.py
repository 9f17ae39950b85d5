"""Public package API for the anisomet metric-field toolkit.

This facade provides a flat import surface on top of the internal
implementation package ``anisomet.core`` while deferring the matplotlib
dependent plotting module until first use to keep ``import anisomet`` fast.

Example
-------
    from anisomet import build_box, metric_from_hessians, metric_for_nelems_from_hessians

The deeper modules (``anisomet.core.*``) are considered internal and may
change; rely on this layer for public symbols.
"""
from importlib import import_module as _imp
import logging as _logging

from importlib.metadata import version as _pkg_version, PackageNotFoundError as _PNF

try:
    __version__ = _pkg_version("anisomet")  # populated when installed
except _PNF:  # pragma: no cover - running from a source checkout
    __version__ = "0.0.0+dev"

_logging.getLogger(__name__).addHandler(_logging.NullHandler())

# Eager light-weight submodules
_const = _imp('anisomet.core.constants')
_config = _imp('anisomet.core.config')
_errors = _imp('anisomet.core.errors')
_tensor = _imp('anisomet.core.tensor')
_mesh = _imp('anisomet.core.mesh')
_metric = _imp('anisomet.core.metric')
_size = _imp('anisomet.core.size')
_stats = _imp('anisomet.core.stats')
_log_utils = _imp('anisomet.core.logging_utils')


def _lazy_module(mod_name):
    class _ModuleProxy:
        __slots__ = ('_m',)

        def _load(self):
            try:
                return self._m
            except AttributeError:
                self._m = _imp(mod_name)
                return self._m

        def __getattr__(self, item):
            if item == "_m":
                raise AttributeError(item)
            return getattr(self._load(), item)

        def __dir__(self):
            return dir(self._load())
    return _ModuleProxy()


# Lazily loaded matplotlib-backed module
visualization = _lazy_module('anisomet.core.visualization')

# Constants
VERT, EDGE, FACE, REGION = _const.VERT, _const.EDGE, _const.FACE, _const.REGION
symm_dofs = _const.symm_dofs

# Configuration, logging and errors
MetricConfig = _config.MetricConfig
ScalingConfig = _config.ScalingConfig
configure_logging = _log_utils.configure_logging
get_logger = _log_utils.get_logger
MetricError = _errors.MetricError
MetricPreconditionError = _errors.MetricPreconditionError
MetricConvergenceError = _errors.MetricConvergenceError

# Mesh
Mesh = _mesh.Mesh
SimplexMesh = _mesh.SimplexMesh
SerialComm = _mesh.SerialComm
TransferPolicy = _mesh.TransferPolicy
OutputPolicy = _mesh.OutputPolicy
build_box = _mesh.build_box

# Metric operations
linearize_metrics = _metric.linearize_metrics
delinearize_metrics = _metric.delinearize_metrics
average_metric = _metric.average_metric
interpolate_metrics = _metric.interpolate_metrics
axes_from_metrics = _metric.axes_from_metrics
axes_from_metric_field = _metric.axes_from_metric_field
metric_from_hessians = _metric.metric_from_hessians
metric_for_nelems_from_hessians = _metric.metric_for_nelems_from_hessians
scale_metric_for_nelems = _metric.scale_metric_for_nelems
isotropic_metrics = _metric.isotropic_metrics

# Element-count estimation
metric_scalar_for_nelems = _size.metric_scalar_for_nelems
expected_nelems = _size.expected_nelems

ScalingStats = _stats.ScalingStats

# Namespace submodules for exploratory users
constants = _const
tensor = _tensor
mesh = _mesh
metric = _metric
size = _size
stats = _stats

__all__ = [
    '__version__',
    'VERT', 'EDGE', 'FACE', 'REGION', 'symm_dofs',
    'MetricConfig', 'ScalingConfig', 'configure_logging', 'get_logger',
    'MetricError', 'MetricPreconditionError', 'MetricConvergenceError',
    'Mesh', 'SimplexMesh', 'SerialComm', 'TransferPolicy', 'OutputPolicy', 'build_box',
    'linearize_metrics', 'delinearize_metrics', 'average_metric', 'interpolate_metrics',
    'axes_from_metrics', 'axes_from_metric_field', 'metric_from_hessians',
    'metric_for_nelems_from_hessians', 'scale_metric_for_nelems', 'isotropic_metrics',
    'metric_scalar_for_nelems', 'expected_nelems', 'ScalingStats',
    'constants', 'tensor', 'mesh', 'metric', 'size', 'stats', 'visualization',
]
