"""Exceptions raised by diffrmap.

Errors raised at setup time (:class:`ConfigurationError`,
:class:`TrainingDataError`) are fatal. Errors raised inside a planning
iteration (:class:`SolverFailure`, :class:`IKConvergenceFailure`) are
caught by the planners and turned into a logged warning.
"""


class DiffRmapError(Exception):
    """Base class of all diffrmap errors."""


class ConfigurationError(DiffRmapError, ValueError):
    """Unsupported sampling space, dimension mismatch or invalid option."""


class TrainingDataError(DiffRmapError, ValueError):
    """Sample set can not be used to train a classifier."""


class SolverFailure(DiffRmapError, RuntimeError):
    """QP is infeasible or the QP solver failed."""


class IKConvergenceFailure(DiffRmapError, RuntimeError):
    """No IK trial reached the error threshold.

    Parameters
    ----------
    message : str
        description of the failure.
    best_joint_config : numpy.ndarray or None
        best joint configuration found over all trials.
    best_error : float
        norm of the error of ``best_joint_config``.
    """

    def __init__(self, message, best_joint_config=None, best_error=None):
        super(IKConvergenceFailure, self).__init__(message)
        self.best_joint_config = best_joint_config
        self.best_error = best_error
