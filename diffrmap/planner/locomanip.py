import enum
from logging import getLogger

import numpy as np

from diffrmap.coordinates import Coordinates
from diffrmap.exceptions import ConfigurationError
from diffrmap.planner.base import IncrementalQPPlanner
from diffrmap.planner.base import make_adjacent_reg_mat
from diffrmap.planner.config import LocomanipConfig
from diffrmap.sampling_space import SamplingSpace


logger = getLogger(__name__)


class Limb(enum.Enum):

    LEFT_FOOT = 'left_foot'
    RIGHT_FOOT = 'right_foot'
    LEFT_HAND = 'left_hand'


def to_limb(limb):
    """Convert a Limb, its name or its value to Limb."""
    if isinstance(limb, Limb):
        return limb
    if isinstance(limb, str):
        for candidate in Limb:
            if limb.lower() in (candidate.value, candidate.name.lower()):
                return candidate
    raise ConfigurationError('Unknown limb: {!r}'.format(limb))


class LocomanipPlanner(IncrementalQPPlanner):
    """Plan a foot chain and a hand chain of the same length.

    Foot ``i`` must be reachable from foot ``i - 1``, the first one
    from the start right foot. Left feet are at even indices. Hand
    entry ``i`` must be reachable from hand entry ``i - 1``, the first
    one from the start hand. The last hand entry is pulled to the
    target.

    Parameters
    ----------
    classifiers : dict
        classifiers keyed by :class:`Limb`. ``LEFT_FOOT`` evaluates a
        left foot relative to the previous right foot and
        ``RIGHT_FOOT`` the converse. ``RIGHT_FOOT`` may be omitted with
        ``alternate_lr``. ``LEFT_HAND`` may be omitted without
        ``hand_link_constraint``.
    config : LocomanipConfig, optional
    publisher : callable, optional
    """

    def __init__(self, classifiers, config=None, publisher=None):
        if config is None:
            config = LocomanipConfig()
        super(LocomanipPlanner, self).__init__(config, publisher=publisher)
        self.classifiers = {to_limb(limb): classifier
                            for limb, classifier in classifiers.items()}
        required = [Limb.LEFT_FOOT]
        if not config.alternate_lr:
            required.append(Limb.RIGHT_FOOT)
        if config.hand_link_constraint:
            required.append(Limb.LEFT_HAND)
        for limb in required:
            if limb not in self.classifiers:
                raise ConfigurationError(
                    'Classifier of {} is required'.format(limb.value))
        spaces = {c.ops.space for c in self.classifiers.values()}
        if len(spaces) != 1:
            raise ConfigurationError(
                'All classifiers must share one sampling space, got {}'
                .format(sorted(str(s) for s in spaces)))
        self.ops = self.classifiers[Limb.LEFT_FOOT].ops
        if config.alternate_lr and self.ops.space != SamplingSpace.SE2:
            raise ConfigurationError(
                'alternate_lr is only supported in SE2, got {}'.format(
                    self.ops.space))

        self.start_sample_map = {}
        initial_poses = {to_limb(limb): pose for limb, pose
                         in config.initial_sample_poses.items()}
        for limb in Limb:
            self.start_sample_map[limb] = self.ops.pose_to_sample(
                initial_poses.get(limb, Coordinates()))
        self.target_hand_sample = self.start_sample_map[Limb.LEFT_HAND].copy()
        self.current_foot_sample_seq = []
        self.current_hand_sample_seq = []
        self.setup()

    @property
    def motion_len(self):
        return self.config.motion_len

    @property
    def config_dim(self):
        return 2 * self.motion_len * self.ops.vel_dim

    @property
    def ineq_dim(self):
        if self.config.hand_link_constraint:
            return 2 * self.motion_len
        return self.motion_len

    def _setup_chain(self):
        self.current_foot_sample_seq = [
            self.start_sample_map[
                Limb.LEFT_FOOT if i % 2 == 0 else Limb.RIGHT_FOOT].copy()
            for i in range(self.motion_len)]
        self.current_hand_sample_seq = [
            self.start_sample_map[Limb.LEFT_HAND].copy()
            for _ in range(self.motion_len)]

    def set_target(self, target_hand_pose):
        """Set the pose the last hand entry is pulled to."""
        with self._lock:
            self.target_hand_sample = self.ops.pose_to_sample(
                target_hand_pose)

    def _set_objective(self, qp):
        vel_dim = self.ops.vel_dim
        config_dim = self.config_dim
        hand_col = self.motion_len * vel_dim
        tail = slice(config_dim - vel_dim, config_dim)

        error = self.ops.sample_error(self.target_hand_sample,
                                      self.current_hand_sample_seq[-1])
        qp.obj_vec[tail] = error
        qp.obj_mat[tail, tail] += np.eye(vel_dim)
        qp.obj_mat[:config_dim, :config_dim] += \
            (error.dot(error) + self.config.reg_weight) * np.eye(config_dim)

        weight = self.config.adjacent_reg_weight
        adjacent_reg_mat = make_adjacent_reg_mat(
            self.motion_len, vel_dim, weight)
        identity = self.ops.identity_sample()
        for col, seq, start_limb in (
                (0, self.current_foot_sample_seq, Limb.LEFT_FOOT),
                (hand_col, self.current_hand_sample_seq, Limb.LEFT_HAND)):
            chain = slice(col, col + hand_col)
            current_config = np.hstack(
                [self.ops.sample_error(identity, sample) for sample in seq])
            qp.obj_mat[chain, chain] += adjacent_reg_mat
            qp.obj_vec[chain] += adjacent_reg_mat.dot(current_config)
            # anchor the first entry to the start instead of the identity
            qp.obj_vec[col:col + vel_dim] -= weight * self.ops.sample_error(
                identity, self.start_sample_map[start_limb])

    def _foot_classifier(self, i):
        if i % 2 == 0:
            return self.classifiers[Limb.LEFT_FOOT], False
        if self.config.alternate_lr:
            return self.classifiers[Limb.LEFT_FOOT], True
        return self.classifiers[Limb.RIGHT_FOOT], False

    def _set_inequality(self, qp):
        vel_dim = self.ops.vel_dim
        hand_col = self.motion_len * vel_dim
        for i, sample in enumerate(self.current_foot_sample_seq):
            if i == 0:
                pre_sample = self.start_sample_map[Limb.RIGHT_FOOT]
                pre_col = None
            else:
                pre_sample = self.current_foot_sample_seq[i - 1]
                pre_col = (i - 1) * vel_dim
            classifier, mirror = self._foot_classifier(i)
            self._add_reachability_row(
                qp, i, classifier, pre_sample, sample,
                suc_col=i * vel_dim, pre_col=pre_col, mirror=mirror)

        if not self.config.hand_link_constraint:
            return
        classifier = self.classifiers[Limb.LEFT_HAND]
        for i, sample in enumerate(self.current_hand_sample_seq):
            if i == 0:
                pre_sample = self.start_sample_map[Limb.LEFT_HAND]
                pre_col = None
            else:
                pre_sample = self.current_hand_sample_seq[i - 1]
                pre_col = hand_col + (i - 1) * vel_dim
            self._add_reachability_row(
                qp, self.motion_len + i, classifier, pre_sample, sample,
                suc_col=hand_col + i * vel_dim, pre_col=pre_col)

    def _integrate(self, vel):
        vel_dim = self.ops.vel_dim
        hand_col = self.motion_len * vel_dim
        for i in range(self.motion_len):
            self.current_foot_sample_seq[i] = \
                self.ops.integrate_vel_to_sample(
                    self.current_foot_sample_seq[i],
                    vel[i * vel_dim:(i + 1) * vel_dim])
            col = hand_col + i * vel_dim
            self.current_hand_sample_seq[i] = \
                self.ops.integrate_vel_to_sample(
                    self.current_hand_sample_seq[i],
                    vel[col:col + vel_dim])

    def _chain_state(self):
        return {'foot': np.array(self.current_foot_sample_seq),
                'hand': np.array(self.current_hand_sample_seq)}

    def _set_chain_state(self, state):
        self.current_foot_sample_seq = [
            sample.copy() for sample in state['foot']]
        self.current_hand_sample_seq = [
            sample.copy() for sample in state['hand']]

    def _link_values(self):
        if self.config.hand_link_constraint:
            return np.hstack([self.foot_link_values(),
                              self.hand_link_values()])
        return self.foot_link_values()

    def target_error(self):
        """Return the norm of the error of the last hand entry."""
        return float(np.linalg.norm(self.ops.sample_error(
            self.target_hand_sample, self.current_hand_sample_seq[-1])))

    def foot_link_values(self):
        """Return the classifier value of every foot link."""
        values = []
        pre_sample = self.start_sample_map[Limb.RIGHT_FOOT]
        for i, sample in enumerate(self.current_foot_sample_seq):
            classifier, mirror = self._foot_classifier(i)
            rel = self.ops.rel_sample(pre_sample, sample)
            if mirror:
                rel = self.ops.mirror_sample(rel)
            values.append(classifier.evaluate(rel))
            pre_sample = sample
        return np.array(values)

    def hand_link_values(self):
        """Return the hand classifier value of every hand link."""
        classifier = self.classifiers[Limb.LEFT_HAND]
        values = []
        pre_sample = self.start_sample_map[Limb.LEFT_HAND]
        for sample in self.current_hand_sample_seq:
            values.append(classifier.evaluate(
                self.ops.rel_sample(pre_sample, sample)))
            pre_sample = sample
        return np.array(values)
