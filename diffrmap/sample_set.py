"""Labeled pose samples used to train a reachability classifier.

Typical usage:
    >>> from diffrmap.sample_set import RmapSampler
    >>> sampler = RmapSampler('R2', forward_kinematics, lower, upper)
    >>> sample_set = sampler.run(sample_num=1000, unreachable_num=1000)
    >>> sample_set.save('/tmp/rmap_sample_set.npz')
"""

from logging import getLogger
from typing import Callable
from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

from diffrmap.coordinates import Coordinates
from diffrmap.exceptions import ConfigurationError
from diffrmap.exceptions import TrainingDataError
from diffrmap.sampling_space import get_sampling_space


logger = getLogger(__name__)


class SampleSet(object):
    """Ordered list of samples with a reachability label.

    Reachable samples are stored first. The relative order inside each
    group is kept as given.

    Parameters
    ----------
    sampling_space : SamplingSpace or str or int
        space of the samples.
    samples : array-like
        samples of shape (N, sample_dim).
    reachability : array-like
        boolean labels of shape (N,).
    sample_min : array-like, optional
        componentwise lower bound. Computed from the samples if omitted.
    sample_max : array-like, optional
        componentwise upper bound. Computed from the samples if omitted.

    Attributes
    ----------
    samples : numpy.ndarray
        samples ordered reachable first.
    reachability : numpy.ndarray
        labels aligned with ``samples``.
    sample_min : numpy.ndarray
    sample_max : numpy.ndarray
    """

    def __init__(self, sampling_space, samples, reachability,
                 sample_min=None, sample_max=None):
        self.ops = get_sampling_space(sampling_space)
        dim = self.ops.sample_dim
        samples = np.asarray(samples, dtype=np.float64)
        if samples.size == 0:
            samples = samples.reshape(0, dim)
        reachability = np.asarray(reachability, dtype=bool).reshape(-1)
        if samples.ndim != 2 or samples.shape[1] != dim:
            raise ConfigurationError(
                'Samples of {} must have shape (N, {}), got {}'.format(
                    self.ops.space, dim, samples.shape))
        if len(reachability) != len(samples):
            raise ConfigurationError(
                'Number of labels {} does not match number of samples {}'
                .format(len(reachability), len(samples)))

        order = np.argsort(~reachability, kind='stable')
        self.samples = samples[order]
        self.reachability = reachability[order]

        if sample_min is None:
            sample_min = self.samples.min(axis=0) if len(self.samples) \
                else np.zeros(dim)
        if sample_max is None:
            sample_max = self.samples.max(axis=0) if len(self.samples) \
                else np.zeros(dim)
        self.sample_min = np.asarray(sample_min, dtype=np.float64)
        self.sample_max = np.asarray(sample_max, dtype=np.float64)
        if self.sample_min.shape != (dim,) \
           or self.sample_max.shape != (dim,):
            raise ConfigurationError(
                'Sample bounds must have shape ({},)'.format(dim))

    def __len__(self):
        return len(self.samples)

    def __repr__(self):
        return '{}(space={}, samples={}, reachable={})'.format(
            self.__class__.__name__, self.space, len(self),
            self.n_reachable)

    @property
    def space(self):
        return self.ops.space

    @property
    def sample_dim(self):
        return self.ops.sample_dim

    @property
    def n_reachable(self):
        return int(np.count_nonzero(self.reachability))

    @property
    def reachable_samples(self):
        return self.samples[:self.n_reachable]

    @property
    def unreachable_samples(self):
        return self.samples[self.n_reachable:]

    def inputs(self):
        """Return the classifier inputs of all samples.

        Returns
        -------
        inputs : numpy.ndarray
            array of shape (N, input_dim).
        """
        if len(self) == 0:
            return np.zeros((0, self.ops.input_dim))
        return np.array([self.ops.sample_to_input(s) for s in self.samples])

    def cloud_points(self, reachable_only=False):
        """Return 3d points to visualize the samples as a point cloud."""
        samples = self.reachable_samples if reachable_only else self.samples
        return np.array([self.ops.sample_to_cloud_pos(s) for s in samples]
                        ).reshape(-1, 3)

    def check_trainable(self):
        """Raise if the set can not be used to train a classifier.

        Raises
        ------
        diffrmap.exceptions.TrainingDataError
            If the set is empty or has a single label.
        """
        if len(self) == 0:
            raise TrainingDataError('Sample set is empty')
        if self.n_reachable == 0 or self.n_reachable == len(self):
            raise TrainingDataError(
                'Sample set must contain both reachable and unreachable '
                'samples, got {} reachable of {}'.format(
                    self.n_reachable, len(self)))

    def save(self, filepath: str):
        """Save sample set to file.

        Parameters
        ----------
        filepath : str
            Path to save file (.npz).
        """
        np.savez_compressed(
            filepath,
            sampling_space=int(self.space),
            samples=self.samples,
            reachability=self.reachability,
            sample_min=self.sample_min,
            sample_max=self.sample_max)
        logger.info('Saved %d samples to %s', len(self), filepath)

    @classmethod
    def load(cls, filepath: str, sampling_space=None) -> "SampleSet":
        """Load sample set from file.

        Parameters
        ----------
        filepath : str
            Path to load file (.npz).
        sampling_space : SamplingSpace or str or int, optional
            expected space. A mismatch with the stored space raises
            :class:`diffrmap.exceptions.ConfigurationError`.
        """
        data = np.load(filepath)
        stored = get_sampling_space(int(data['sampling_space']))
        if sampling_space is not None \
           and get_sampling_space(sampling_space) is not stored:
            raise ConfigurationError(
                'Sample set {} is in {} but {} is expected'.format(
                    filepath, stored.space,
                    get_sampling_space(sampling_space).space))
        sample_set = cls(stored, data['samples'], data['reachability'],
                         sample_min=data['sample_min'],
                         sample_max=data['sample_max'])
        logger.info('Loaded %d samples from %s', len(sample_set), filepath)
        return sample_set


class RmapSampler(object):
    """Generate a sample set from the forward kinematics of a robot.

    Reachable samples are the body poses of random joint configurations
    drawn uniformly within the joint limits. Unreachable samples are
    random samples around the reachable region whose nearest reachable
    sample is farther than a distance threshold.

    Parameters
    ----------
    sampling_space : SamplingSpace or str or int
        space onto which body poses are projected.
    forward_kinematics : callable
        function mapping a joint configuration to the body pose as a
        :class:`diffrmap.coordinates.Coordinates`.
    joint_limits_lower : array-like
    joint_limits_upper : array-like
    body_pose_offset : diffrmap.coordinates.Coordinates, optional
        offset applied in the body frame to every body pose.
    random_state : int or numpy.random.Generator, optional
    """

    def __init__(self, sampling_space,
                 forward_kinematics: Callable[[np.ndarray], Coordinates],
                 joint_limits_lower, joint_limits_upper,
                 body_pose_offset: Optional[Coordinates] = None,
                 random_state=None):
        self.ops = get_sampling_space(sampling_space)
        self.forward_kinematics = forward_kinematics
        self.joint_limits_lower = np.asarray(joint_limits_lower,
                                             dtype=np.float64)
        self.joint_limits_upper = np.asarray(joint_limits_upper,
                                             dtype=np.float64)
        if self.joint_limits_lower.shape != self.joint_limits_upper.shape:
            raise ConfigurationError(
                'Joint limits must have the same shape')
        if np.any(self.joint_limits_lower > self.joint_limits_upper):
            raise ConfigurationError(
                'Lower joint limits must not exceed upper joint limits')
        if body_pose_offset is None:
            body_pose_offset = Coordinates()
        self.body_pose_offset = body_pose_offset
        self.random_state = np.random.default_rng(random_state)

    def random_joint_config(self):
        coeff = 0.5 * (self.joint_limits_upper - self.joint_limits_lower)
        offset = 0.5 * (self.joint_limits_upper + self.joint_limits_lower)
        return coeff * self.random_state.uniform(
            -1.0, 1.0, len(coeff)) + offset

    def body_pose(self, joint_config):
        return self.forward_kinematics(joint_config) * self.body_pose_offset

    def sample_reachable(self, sample_num):
        """Return samples of the body poses of random joint configurations.

        Returns
        -------
        samples : numpy.ndarray
            array of shape (sample_num, sample_dim).
        """
        samples = np.empty((sample_num, self.ops.sample_dim))
        for i in range(sample_num):
            samples[i] = self.ops.pose_to_sample(
                self.body_pose(self.random_joint_config()))
        return samples

    def sample_unreachable(self, reachable_samples, sample_num,
                           dist_thre=0.05, bound_margin=0.2,
                           max_trial_num=None):
        """Return random samples far from every reachable sample.

        Candidates are drawn uniformly in the bounding box of the
        reachable samples enlarged by ``bound_margin``. The distance is
        measured between classifier inputs.

        Parameters
        ----------
        reachable_samples : numpy.ndarray
            reachable samples of shape (M, sample_dim).
        sample_num : int
            number of unreachable samples to return.
        dist_thre : float
            minimum distance to the nearest reachable sample.
        bound_margin : float
            margin added on both sides of the bounding box.
        max_trial_num : int, optional
            maximum number of candidates. Defaults to ``100 * sample_num``.

        Returns
        -------
        samples : numpy.ndarray
            array of shape (K, sample_dim) with ``K <= sample_num``.
        """
        if sample_num == 0:
            return np.zeros((0, self.ops.sample_dim))
        if len(reachable_samples) == 0:
            raise TrainingDataError(
                'Reachable samples are required to sample unreachable ones')
        if max_trial_num is None:
            max_trial_num = 100 * sample_num
        tree = cKDTree(np.array(
            [self.ops.sample_to_input(s) for s in reachable_samples]))
        lower = reachable_samples.min(axis=0) - bound_margin
        upper = reachable_samples.max(axis=0) + bound_margin

        samples = []
        for _ in range(max_trial_num):
            candidate = self.random_state.uniform(lower, upper)
            # project onto the manifold, e.g. normalize quaternions
            candidate = self.ops.pose_to_sample(
                self.ops.sample_to_pose(candidate))
            dist, _ = tree.query(self.ops.sample_to_input(candidate))
            if dist > dist_thre:
                samples.append(candidate)
                if len(samples) == sample_num:
                    break
        if len(samples) < sample_num:
            logger.warning(
                'Only %d of %d unreachable samples were found in %d trials',
                len(samples), sample_num, max_trial_num)
        return np.array(samples).reshape(-1, self.ops.sample_dim)

    def run(self, sample_num, unreachable_num=0, dist_thre=0.05,
            bound_margin=0.2):
        """Sample reachable and unreachable poses into a sample set.

        Parameters
        ----------
        sample_num : int
            number of reachable samples.
        unreachable_num : int
            number of unreachable samples.

        Returns
        -------
        sample_set : SampleSet
        """
        reachable = self.sample_reachable(sample_num)
        unreachable = self.sample_unreachable(
            reachable, unreachable_num, dist_thre=dist_thre,
            bound_margin=bound_margin)
        logger.info('Sampled %d reachable and %d unreachable samples in %s',
                    len(reachable), len(unreachable), self.ops.space)
        samples = np.vstack([reachable, unreachable])
        reachability = np.hstack([np.ones(len(reachable), dtype=bool),
                                  np.zeros(len(unreachable), dtype=bool)])
        return SampleSet(self.ops, samples, reachability)
