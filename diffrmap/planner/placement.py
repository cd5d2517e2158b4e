from logging import getLogger

import numpy as np

from diffrmap.exceptions import ConfigurationError
from diffrmap.exceptions import IKConvergenceFailure
from diffrmap.planner.base import IncrementalQPPlanner
from diffrmap.planner.config import PlacementConfig
from diffrmap.planner.inverse_kinematics import solve_ik


logger = getLogger(__name__)


class PlacementPlanner(IncrementalQPPlanner):
    """Place a robot base so that several reaching targets are reachable.

    The variables are the placement and one reaching pose per target.
    Each reaching pose must be reachable from the placement and is
    pulled to its target. When a forward kinematics is given, IK of
    every reaching pose is solved after each iteration.

    Parameters
    ----------
    classifier : diffrmap.classifier.ReachabilityClassifier
        reachability of a reaching pose relative to the placement.
    target_reaching_poses : list[Coordinates], optional
        one target per reaching pose. Identity if omitted.
    config : PlacementConfig, optional
    publisher : callable, optional
    forward_kinematics : callable, optional
        function mapping a joint configuration to the body pose relative
        to the placement.
    joint_limits : tuple(array-like, array-like), optional
        lower and upper joint limits. Required with
        ``forward_kinematics``.
    random_state : int or numpy.random.Generator, optional
        randomness of the IK restarts.
    """

    def __init__(self, classifier, target_reaching_poses=None, config=None,
                 publisher=None, forward_kinematics=None, joint_limits=None,
                 random_state=None):
        if config is None:
            config = PlacementConfig()
        super(PlacementPlanner, self).__init__(config, publisher=publisher)
        self.classifier = classifier
        self.ops = classifier.ops
        self.forward_kinematics = forward_kinematics
        if forward_kinematics is not None:
            if joint_limits is None:
                raise ConfigurationError(
                    'joint_limits is required with forward_kinematics')
            self.joint_limits_lower = np.asarray(joint_limits[0],
                                                 dtype=np.float64)
            self.joint_limits_upper = np.asarray(joint_limits[1],
                                                 dtype=np.float64)
        self.random_state = np.random.default_rng(random_state)

        identity = self.ops.identity_sample()
        self.target_placement_sample = identity
        self.target_reaching_samples = [identity.copy()
                                        for _ in range(self.reaching_num)]
        if target_reaching_poses is not None:
            self._set_target_reaching(target_reaching_poses)
        self.current_placement_sample = None
        self.current_reaching_sample_list = []
        self.joint_config_list = []
        self.setup()

    @property
    def reaching_num(self):
        return self.config.reaching_num

    @property
    def config_dim(self):
        return (1 + self.reaching_num) * self.ops.vel_dim

    @property
    def ineq_dim(self):
        return self.reaching_num

    def _set_target_reaching(self, target_reaching_poses):
        if len(target_reaching_poses) != self.reaching_num:
            raise ConfigurationError(
                '{} reaching targets are required, got {}'.format(
                    self.reaching_num, len(target_reaching_poses)))
        self.target_reaching_samples = [
            self.ops.pose_to_sample(pose) for pose in target_reaching_poses]

    def _setup_chain(self):
        if self.config.initial_placement_pose is None:
            self.current_placement_sample = self.ops.identity_sample()
        else:
            self.current_placement_sample = self.ops.pose_to_sample(
                self.config.initial_placement_pose)
        self.current_reaching_sample_list = [
            sample.copy() for sample in self.target_reaching_samples]
        self.joint_config_list = [None] * self.reaching_num

    def set_target(self, target_reaching_poses=None, placement_pose=None):
        """Update the reaching targets and the preferred placement."""
        with self._lock:
            if target_reaching_poses is not None:
                self._set_target_reaching(target_reaching_poses)
            if placement_pose is not None:
                self.target_placement_sample = self.ops.pose_to_sample(
                    placement_pose)

    def _set_objective(self, qp):
        vel_dim = self.ops.vel_dim
        config_dim = self.config_dim

        sq_error = 0.0
        for i in range(self.reaching_num):
            col = (1 + i) * vel_dim
            error = self.ops.sample_error(
                self.target_reaching_samples[i],
                self.current_reaching_sample_list[i])
            sq_error += error.dot(error)
            qp.obj_vec[col:col + vel_dim] = error
            qp.obj_mat[col:col + vel_dim, col:col + vel_dim] += \
                np.eye(vel_dim)

        weight = self.config.placement_weight
        qp.obj_vec[:vel_dim] += weight * self.ops.sample_error(
            self.target_placement_sample, self.current_placement_sample)
        qp.obj_mat[:vel_dim, :vel_dim] += weight * np.eye(vel_dim)

        qp.obj_mat[:config_dim, :config_dim] += \
            (sq_error + self.config.reg_weight) * np.eye(config_dim)

    def _set_inequality(self, qp):
        vel_dim = self.ops.vel_dim
        for i, sample in enumerate(self.current_reaching_sample_list):
            self._add_reachability_row(
                qp, i, self.classifier, self.current_placement_sample,
                sample, suc_col=(1 + i) * vel_dim, pre_col=0)

    def _integrate(self, vel):
        vel_dim = self.ops.vel_dim
        self.current_placement_sample = self.ops.integrate_vel_to_sample(
            self.current_placement_sample, vel[:vel_dim])
        for i in range(self.reaching_num):
            col = (1 + i) * vel_dim
            self.current_reaching_sample_list[i] = \
                self.ops.integrate_vel_to_sample(
                    self.current_reaching_sample_list[i],
                    vel[col:col + vel_dim])

    def _post_step(self, solved):
        if self.forward_kinematics is None or not solved:
            return False, ''
        degenerate = False
        failed = []
        for i, sample in enumerate(self.current_reaching_sample_list):
            target = self.ops.rel_sample(self.current_placement_sample,
                                         sample)
            try:
                joint_config, _ = solve_ik(
                    self.forward_kinematics, self.ops, target,
                    self.joint_limits_lower, self.joint_limits_upper,
                    initial_joint_config=self.joint_config_list[i],
                    trial_num=self.config.ik_trial_num,
                    loop_num=self.config.ik_loop_num,
                    error_thre=self.config.ik_error_thre,
                    random_state=self.random_state)
            except IKConvergenceFailure as e:
                logger.warning('IK of reaching %d failed: %s', i, e)
                joint_config = e.best_joint_config
                degenerate = True
                failed.append(i)
            self.joint_config_list[i] = joint_config
        if failed:
            return degenerate, 'IK failed for reaching {}'.format(failed)
        return degenerate, ''

    def _chain_state(self):
        return {'placement': self.current_placement_sample[None].copy(),
                'reaching': np.array(self.current_reaching_sample_list)}

    def _set_chain_state(self, state):
        self.current_placement_sample = state['placement'][0].copy()
        self.current_reaching_sample_list = [
            sample.copy() for sample in state['reaching']]

    def _link_values(self):
        return self.link_values()

    def placement_pose(self):
        return self.ops.sample_to_pose(self.current_placement_sample)

    def reaching_poses(self):
        return [self.ops.sample_to_pose(sample)
                for sample in self.current_reaching_sample_list]

    def link_values(self):
        """Return the classifier value of every reaching pose."""
        return np.array([
            self.classifier.evaluate(self.ops.rel_sample(
                self.current_placement_sample, sample))
            for sample in self.current_reaching_sample_list])
