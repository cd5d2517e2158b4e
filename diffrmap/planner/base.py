"""Incremental QP planning with a differentiable reachability map.

Every iteration linearizes the classifier around the current chain of
samples and solves a small QP for one velocity step:

.. math::
    \\begin{eqnarray}
    \\mathrm{minimize} & & (1/2) x^T P x + q^T x \\\\
    \\mathrm{subject\\ to} & & G x \\leq h \\\\
        & & x_{min} \\leq x \\leq x_{max}
    \\end{eqnarray}

A reachability row keeps ``f(rel) + grad^T J v >= svm_thre`` where
``rel`` is the relative sample of two chain entries and ``J`` maps the
velocities of the entries to the relative sample velocity.
"""

from abc import ABC
from abc import abstractmethod
from functools import lru_cache
from logging import getLogger
import threading
import time

import numpy as np

from diffrmap.exceptions import SolverFailure
from diffrmap.optimizer import solve_qp


logger = getLogger(__name__)

SLACK_BOUND = np.inf


@lru_cache(maxsize=100)
def _adjacent_unit_mat(num):
    vel_block = np.array([[1, -1], [-1, 1]])
    A_ = np.zeros((num, num))
    # the first entry is anchored to the fixed start
    A_[0, 0] += 1
    for i in range(1, num):
        A_[i - 1:i + 1, i - 1:i + 1] += vel_block
    return A_


def make_adjacent_reg_mat(num, vel_dim, weight):
    """Return the Hessian of the adjacency regularization of a chain.

    The regularization is the weighted squared sum of the differences
    between consecutive entries, the first entry being compared with
    the fixed start. The diagonal blocks are ``2 w I`` except the last
    one ``w I`` and the neighbor blocks are ``-w I``.

    Parameters
    ----------
    num : int
        number of chain entries.
    vel_dim : int
        velocity dimension of an entry.
    weight : float
        weight ``w``.

    Returns
    -------
    mat : numpy.ndarray
        matrix of shape (num * vel_dim, num * vel_dim).
    """
    return weight * np.kron(_adjacent_unit_mat(num), np.eye(vel_dim))


class QpCoefficient(object):
    """Buffers of one QP rebuilt at every iteration."""

    def __init__(self, dim_var, dim_ineq):
        self.dim_var = dim_var
        self.dim_ineq = dim_ineq
        self.obj_mat = np.zeros((dim_var, dim_var))
        self.obj_vec = np.zeros(dim_var)
        self.ineq_mat = np.zeros((dim_ineq, dim_var))
        self.ineq_vec = np.zeros(dim_ineq)
        self.x_min = np.zeros(dim_var)
        self.x_max = np.zeros(dim_var)

    def set_zero(self):
        for array in (self.obj_mat, self.obj_vec, self.ineq_mat,
                      self.ineq_vec, self.x_min, self.x_max):
            array.fill(0.0)


class IterationResult(object):
    """Outcome of one planning iteration.

    Attributes
    ----------
    iteration : int
        index of the iteration, starting from 0 after ``setup``.
    solved : bool
        False if the QP failed and the chain was left unchanged.
    velocity : numpy.ndarray
        configuration velocity applied to the chain. Zero on failure.
    degenerate : bool
        True if a post step, e.g. IK, did not converge.
    message : str
    """

    def __init__(self, iteration, solved, velocity, degenerate=False,
                 message=''):
        self.iteration = iteration
        self.solved = solved
        self.velocity = velocity
        self.degenerate = degenerate
        self.message = message

    def __repr__(self):
        return '{}(iteration={}, solved={}, degenerate={})'.format(
            self.__class__.__name__, self.iteration, self.solved,
            self.degenerate)


class IncrementalQPPlanner(ABC):
    """Base class of the planners.

    Subclasses define the chain, the objective and the reachability rows.
    ``run_once`` holds a lock for a whole iteration so that targets can
    be updated from another thread.

    Parameters
    ----------
    config : diffrmap.planner.config.PlannerConfig
    publisher : callable, optional
        called with ``chain_state()`` after every published iteration.
    """

    def __init__(self, config, publisher=None):
        self.config = config
        self.publisher = publisher
        self.iteration = 0
        self.solver_failure_count = 0
        self.qp_coeff = None
        self._lock = threading.Lock()

    @property
    @abstractmethod
    def config_dim(self):
        """Number of velocity variables of the chain."""

    @property
    @abstractmethod
    def ineq_dim(self):
        """Number of reachability rows."""

    @property
    def var_dim(self):
        if self.config.use_slack:
            return self.config_dim + self.ineq_dim
        return self.config_dim

    @abstractmethod
    def _setup_chain(self):
        """Reset the chain to its initial state."""

    @abstractmethod
    def _set_objective(self, qp):
        """Fill the configuration part of the objective."""

    @abstractmethod
    def _set_inequality(self, qp):
        """Fill the configuration part of the reachability rows."""

    @abstractmethod
    def _integrate(self, vel):
        """Apply a configuration velocity to the chain."""

    @abstractmethod
    def _chain_state(self):
        """Return a copy of the chain as a dict of sample arrays."""

    @abstractmethod
    def _set_chain_state(self, state):
        """Restore a chain returned by ``_chain_state``."""

    @abstractmethod
    def _link_values(self):
        """Return the classifier value of every reachability row."""

    def chain_state(self):
        """Return a copy of the chain as a dict of sample arrays."""
        with self._lock:
            return self._chain_state()

    def _post_step(self, solved):
        """Hook run after integration.

        Returns
        -------
        degenerate : bool
        message : str
        """
        return False, ''

    def setup(self):
        """Reset the chain and allocate the QP buffers."""
        with self._lock:
            self._setup_chain()
            self.qp_coeff = QpCoefficient(self.var_dim, self.ineq_dim)
            self.iteration = 0
            self.solver_failure_count = 0

    def _add_reachability_row(self, qp, row, classifier, pre_sample,
                              suc_sample, suc_col, pre_col=None,
                              mirror=False):
        """Linearize the reachability of ``rel(pre, suc)`` into a row.

        ``pre_col`` is None when the predecessor is fixed.
        """
        ops = classifier.ops
        vel_dim = ops.vel_dim
        rel = ops.rel_sample(pre_sample, suc_sample)
        suc_mat = ops.rel_vel_to_vel_mat(pre_sample, suc_sample, True)
        pre_mat = ops.rel_vel_to_vel_mat(pre_sample, suc_sample, False)
        if mirror:
            rel = ops.mirror_sample(rel)
            suc_mat = ops.mirror_vel_mat(suc_mat)
            pre_mat = ops.mirror_vel_mat(pre_mat)
        value, grad = classifier.value_and_gradient(rel)
        qp.ineq_mat[row, suc_col:suc_col + vel_dim] = -grad.dot(suc_mat)
        if pre_col is not None:
            qp.ineq_mat[row, pre_col:pre_col + vel_dim] = -grad.dot(pre_mat)
        qp.ineq_vec[row] = value - self.config.svm_thre
        return value

    def _set_bounds_and_slack(self, qp):
        config_dim = self.config_dim
        qp.x_min[:config_dim] = -self.config.delta_config_limit
        qp.x_max[:config_dim] = self.config.delta_config_limit
        if self.config.use_slack:
            qp.x_min[config_dim:] = -SLACK_BOUND
            qp.x_max[config_dim:] = SLACK_BOUND
            qp.obj_mat[config_dim:, config_dim:] = \
                self.config.svm_ineq_weight * np.eye(self.ineq_dim)
            qp.ineq_mat[:, config_dim:] = -np.eye(self.ineq_dim)

    def _integrate_safely(self, vel):
        """Integrate ``vel`` without losing the reachability of any link.

        The classifier is only linearized in the QP, so a full step can
        cross the boundary. Links whose value is at least
        ``svm_thre - link_value_tol`` must stay above that bound, other
        links must not get worse. The step is halved until this holds.

        Returns
        -------
        vel : numpy.ndarray
            applied velocity. Zero if the step was rejected.
        accepted : bool
        """
        bound = self.config.svm_thre - self.config.link_value_tol
        before = self._link_values()
        floor = np.where(before >= bound, bound, before)
        state = self._chain_state()
        gain = 1.0
        for _ in range(self.config.step_halving_num + 1):
            self._integrate(gain * vel)
            if np.all(self._link_values() >= floor):
                return gain * vel, True
            self._set_chain_state(state)
            gain *= 0.5
        logger.debug('step rejected at iteration %d', self.iteration)
        return np.zeros_like(vel), False

    def run_once(self, publish=True):
        """Run one planning iteration.

        A QP failure is logged and leaves the chain unchanged.

        Returns
        -------
        result : IterationResult
        """
        if self.qp_coeff is None:
            self.setup()
        with self._lock:
            qp = self.qp_coeff
            qp.set_zero()
            self._set_bounds_and_slack(qp)
            self._set_objective(qp)
            self._set_inequality(qp)

            solved = True
            message = ''
            try:
                x = solve_qp(qp.obj_mat, qp.obj_vec,
                             qp.ineq_mat, qp.ineq_vec,
                             lb=qp.x_min, ub=qp.x_max,
                             solver=self.config.solver)
                vel = x[:self.config_dim]
            except SolverFailure as e:
                solved = False
                message = str(e)
                self.solver_failure_count += 1
                vel = np.zeros(self.config_dim)
                logger.warning('QP failed at iteration %d: %s',
                               self.iteration, e)
            if solved:
                vel, accepted = self._integrate_safely(vel)
                if not accepted:
                    message = 'step rejected by reachability check'
            degenerate, post_message = self._post_step(solved)
            if post_message:
                message = '{} {}'.format(message, post_message).strip()
            result = IterationResult(self.iteration, solved, vel,
                                     degenerate=degenerate, message=message)
            logger.debug('iteration %d: |vel|=%.4g solved=%s',
                         self.iteration, np.linalg.norm(vel), solved)
            self.iteration += 1
            state = self._chain_state() \
                if publish and self.publisher is not None else None

        if state is not None:
            self.publisher(state)
        return result

    def run(self, n_iter=None, rate=None, stop_event=None,
            publish_interval=1):
        """Run iterations until ``n_iter`` or until ``stop_event`` is set.

        Parameters
        ----------
        n_iter : int, optional
            number of iterations. Unlimited if omitted.
        rate : float, optional
            iteration frequency in Hz. As fast as possible if omitted.
        stop_event : threading.Event, optional
            stops the loop when set.
        publish_interval : int
            publish the chain every ``publish_interval`` iterations.
            Never published if 0.

        Returns
        -------
        result : IterationResult or None
            result of the last iteration.
        """
        result = None
        i = 0
        while n_iter is None or i < n_iter:
            if stop_event is not None and stop_event.is_set():
                break
            start = time.time()
            publish = publish_interval > 0 and i % publish_interval == 0
            result = self.run_once(publish=publish)
            i += 1
            if rate:
                time.sleep(max(0.0, 1.0 / rate - (time.time() - start)))
        logger.info('Finished %d iterations with %d QP failures', i,
                    self.solver_failure_count)
        return result
