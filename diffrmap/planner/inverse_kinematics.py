from logging import getLogger

import numpy as np

from diffrmap.coordinates.math import sr_inverse
from diffrmap.exceptions import IKConvergenceFailure


logger = getLogger(__name__)


def numerical_jacobian(fun, x, eps=1e-6):
    """Forward difference Jacobian of ``fun`` at ``x``."""
    f0 = fun(x)
    jac = np.empty((len(f0), len(x)))
    for i in range(len(x)):
        x_plus = np.array(x, dtype=np.float64)
        x_plus[i] += eps
        jac[:, i] = (fun(x_plus) - f0) / eps
    return jac


def solve_ik(forward_kinematics, sampling_space_ops, target_sample,
             joint_limits_lower, joint_limits_upper,
             initial_joint_config=None, trial_num=10, loop_num=50,
             error_thre=1e-2, random_state=None):
    """Solve IK of a body pose projected onto a sampling space.

    Damped least squares iterations run from ``initial_joint_config``
    for the first trial and from random joint configurations within the
    limits for the next trials.

    Parameters
    ----------
    forward_kinematics : callable
        function mapping a joint configuration to a
        :class:`diffrmap.coordinates.Coordinates`.
    sampling_space_ops : diffrmap.sampling_space.SamplingSpaceOps
        space in which the error is measured.
    target_sample : numpy.ndarray
        target of the projected body pose.
    joint_limits_lower : numpy.ndarray
    joint_limits_upper : numpy.ndarray
    initial_joint_config : numpy.ndarray, optional
        warm start of the first trial. Center of the limits if omitted.
    trial_num : int
    loop_num : int
        iterations per trial.
    error_thre : float
        norm of the sample error below which IK succeeds.
    random_state : int or numpy.random.Generator, optional

    Returns
    -------
    joint_config : numpy.ndarray
    error : float

    Raises
    ------
    diffrmap.exceptions.IKConvergenceFailure
        If no trial converges. The best configuration is attached.
    """
    ops = sampling_space_ops
    lower = np.asarray(joint_limits_lower, dtype=np.float64)
    upper = np.asarray(joint_limits_upper, dtype=np.float64)
    rng = np.random.default_rng(random_state)

    def error_fun(q):
        return ops.sample_error(
            target_sample, ops.pose_to_sample(forward_kinematics(q)))

    best_q = None
    best_error = np.inf
    for trial in range(trial_num):
        if trial == 0 and initial_joint_config is not None:
            q = np.clip(np.asarray(initial_joint_config, dtype=np.float64),
                        lower, upper)
        elif trial == 0:
            q = 0.5 * (lower + upper)
        else:
            q = rng.uniform(lower, upper)
        for _ in range(loop_num):
            e = error_fun(q)
            if np.linalg.norm(e) < error_thre:
                break
            J = numerical_jacobian(error_fun, q)
            q = np.clip(q - sr_inverse(J, k=e.dot(e) + 1e-3).dot(e),
                        lower, upper)
        error = float(np.linalg.norm(error_fun(q)))
        if error < best_error:
            best_q, best_error = q, error
        if error < error_thre:
            logger.debug('IK converged in trial %d with error %.4g',
                         trial, error)
            return q, error
    raise IKConvergenceFailure(
        'IK did not converge in {} trials, best error {:.4g}'.format(
            trial_num, best_error),
        best_joint_config=best_q, best_error=best_error)
