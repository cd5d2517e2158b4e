from logging import getLogger

import numpy as np

from diffrmap.coordinates import Coordinates
from diffrmap.exceptions import ConfigurationError
from diffrmap.planner.base import IncrementalQPPlanner
from diffrmap.planner.base import make_adjacent_reg_mat
from diffrmap.planner.config import FootstepConfig
from diffrmap.sampling_space import SamplingSpace


logger = getLogger(__name__)


class FootstepPlanner(IncrementalQPPlanner):
    """Plan a chain of footsteps ending at a target.

    Each footstep must be reachable from the previous one, the first
    one from the identity. The last footstep is pulled to the target.

    Parameters
    ----------
    classifier : diffrmap.classifier.ReachabilityClassifier
        reachability of a footstep relative to the previous one.
    config : FootstepConfig, optional
    publisher : callable, optional
        called with ``chain_state()`` after each published iteration.

    Examples
    --------
    >>> planner = FootstepPlanner(classifier, FootstepConfig(footstep_num=3))
    >>> planner.set_target(Coordinates(pos=[0.8, 0.2, 0.0]))
    >>> planner.run(n_iter=100)
    >>> planner.footstep_poses()
    """

    def __init__(self, classifier, config=None, publisher=None):
        if config is None:
            config = FootstepConfig()
        super(FootstepPlanner, self).__init__(config, publisher=publisher)
        self.classifier = classifier
        self.ops = classifier.ops
        if config.alternate_lr and self.ops.space != SamplingSpace.SE2:
            raise ConfigurationError(
                'alternate_lr is only supported in SE2, got {}'.format(
                    self.ops.space))
        self.target_sample = self.ops.identity_sample()
        self.current_sample_seq = []
        self.setup()

    @property
    def footstep_num(self):
        return self.config.footstep_num

    @property
    def config_dim(self):
        return self.footstep_num * self.ops.vel_dim

    @property
    def ineq_dim(self):
        return self.footstep_num

    def _is_mirrored(self, i):
        return self.config.alternate_lr and i % 2 == 1

    def _setup_chain(self):
        if self.config.initial_sample_pose is None:
            rel = self.ops.identity_sample()
        else:
            rel = self.ops.pose_to_sample(self.config.initial_sample_pose)
        pose = Coordinates()
        self.current_sample_seq = []
        for i in range(self.footstep_num):
            step = self.ops.mirror_sample(rel) if self._is_mirrored(i) \
                else rel
            pose = pose * self.ops.sample_to_pose(step)
            self.current_sample_seq.append(self.ops.pose_to_sample(pose))

    def set_target(self, target_pose):
        """Set the pose the last footstep is pulled to."""
        with self._lock:
            self.target_sample = self.ops.pose_to_sample(target_pose)

    def _set_objective(self, qp):
        vel_dim = self.ops.vel_dim
        config_dim = self.config_dim
        tail = slice(config_dim - vel_dim, config_dim)

        qp.obj_vec[tail] = self.ops.sample_error(
            self.target_sample, self.current_sample_seq[-1])
        lam = qp.obj_vec[:config_dim].dot(qp.obj_vec[:config_dim]) \
            + self.config.reg_weight
        qp.obj_mat[tail, tail] += np.eye(vel_dim)
        qp.obj_mat[:config_dim, :config_dim] += lam * np.eye(config_dim)

        adjacent_reg_mat = make_adjacent_reg_mat(
            self.footstep_num, vel_dim, self.config.adjacent_reg_weight)
        identity = self.ops.identity_sample()
        current_config = np.hstack(
            [self.ops.sample_error(identity, sample)
             for sample in self.current_sample_seq])
        qp.obj_mat[:config_dim, :config_dim] += adjacent_reg_mat
        qp.obj_vec[:config_dim] += adjacent_reg_mat.dot(current_config)

    def _set_inequality(self, qp):
        vel_dim = self.ops.vel_dim
        identity = self.ops.identity_sample()
        for i, sample in enumerate(self.current_sample_seq):
            if i == 0:
                pre_sample, pre_col = identity, None
            else:
                pre_sample = self.current_sample_seq[i - 1]
                pre_col = (i - 1) * vel_dim
            self._add_reachability_row(
                qp, i, self.classifier, pre_sample, sample,
                suc_col=i * vel_dim, pre_col=pre_col,
                mirror=self._is_mirrored(i))

    def _integrate(self, vel):
        vel_dim = self.ops.vel_dim
        for i in range(self.footstep_num):
            self.current_sample_seq[i] = self.ops.integrate_vel_to_sample(
                self.current_sample_seq[i], vel[i * vel_dim:(i + 1) * vel_dim])

    def _chain_state(self):
        return {'footstep': np.array(self.current_sample_seq)}

    def _set_chain_state(self, state):
        self.current_sample_seq = [
            sample.copy() for sample in state['footstep']]

    def _link_values(self):
        return self.link_values()

    def rel_samples(self):
        """Return the relative samples evaluated by the classifier."""
        rel_samples = []
        pre_sample = self.ops.identity_sample()
        for i, sample in enumerate(self.current_sample_seq):
            rel = self.ops.rel_sample(pre_sample, sample)
            if self._is_mirrored(i):
                rel = self.ops.mirror_sample(rel)
            rel_samples.append(rel)
            pre_sample = sample
        return rel_samples

    def link_values(self):
        """Return the classifier value of every footstep link."""
        return np.array([self.classifier.evaluate(rel)
                         for rel in self.rel_samples()])

    def target_error(self):
        """Return the norm of the error of the last footstep."""
        return float(np.linalg.norm(self.ops.sample_error(
            self.target_sample, self.current_sample_seq[-1])))

    def footstep_poses(self):
        return [self.ops.sample_to_pose(sample)
                for sample in self.current_sample_seq]

    def footstep_polygons(self, foot_size=(0.2, 0.1)):
        """Return the rectangle of every footstep for visualization.

        Parameters
        ----------
        foot_size : tuple(float, float)
            length and width of a foot.

        Returns
        -------
        polygons : numpy.ndarray
            array of shape (footstep_num, 4, 3) of corner positions.
        """
        half_x, half_y = 0.5 * foot_size[0], 0.5 * foot_size[1]
        corners = np.array([[half_x, half_y, 0.0],
                            [-half_x, half_y, 0.0],
                            [-half_x, -half_y, 0.0],
                            [half_x, -half_y, 0.0]])
        return np.array([pose.transform_vector(corners)
                         for pose in self.footstep_poses()])
