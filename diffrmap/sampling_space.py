"""Sampling spaces of the reachability map.

A sampling space is the manifold on which reachability is learned and
planned. Six spaces are supported, each one is a projection of a full
6-DoF pose:

========  ======  =====  ===  ==============================
space     sample  input  vel  sample layout
========  ======  =====  ===  ==============================
``R2``    2       2      2    (x, y)
``SO2``   1       2      1    (theta)
``SE2``   3       4      3    (x, y, theta)
``R3``    3       3      3    (x, y, z)
``SO3``   4       9      3    quaternion (w, x, y, z)
``SE3``   7       12     6    (x, y, z, w, qx, qy, qz)
========  ======  =====  ===  ==============================

The classifier input lifts angles to (cos, sin) and quaternions to
rotation matrices so that the decision function is smooth across the
angle wrap and the quaternion double cover.

Velocities are expressed in the world frame. Translational components
are added to the position and rotational components ``omega`` are
applied by left multiplication ``R <- exp([omega]x) R``. A velocity is
assumed to be applied over a unit time step.

Typical usage:
    >>> from diffrmap.sampling_space import get_sampling_space
    >>> space = get_sampling_space('SE2')
    >>> space.sample_dim, space.input_dim, space.vel_dim
    (3, 4, 3)
"""

from abc import ABC
from abc import abstractmethod
import enum

import numpy as np

from diffrmap.coordinates import Coordinates
from diffrmap.coordinates.math import matrix2quaternion
from diffrmap.coordinates.math import matrix_log
from diffrmap.coordinates.math import outer_product_matrix
from diffrmap.coordinates.math import quaternion2matrix
from diffrmap.coordinates.math import quaternion_multiply
from diffrmap.coordinates.math import quaternion_normalize
from diffrmap.coordinates.math import random_quaternion
from diffrmap.coordinates.math import rotation_matrix_2d
from diffrmap.coordinates.math import rotation_matrix_z
from diffrmap.coordinates.math import rotation_vector_to_quaternion
from diffrmap.coordinates.math import wrap_angle
from diffrmap.coordinates.math import yaw_angle
from diffrmap.exceptions import ConfigurationError


class SamplingSpace(enum.IntEnum):
    """Closed set of sampling spaces.

    The integer values are the tags stored in sample set, grid map and
    classifier files.
    """

    R2 = 21
    SO2 = 22
    SE2 = 23
    R3 = 31
    SO3 = 32
    SE3 = 33

    def __str__(self):
        return self.name


def _so3_input_jacobian(rot):
    """Jacobian of the row-major flattened rotation w.r.t. world omega."""
    jac = np.empty((9, 3))
    for k in range(3):
        axis = np.zeros(3)
        axis[k] = 1.0
        jac[:, k] = outer_product_matrix(axis).dot(rot).ravel()
    return jac


def _integrate_quaternion(quat, omega):
    quat = quaternion_multiply(rotation_vector_to_quaternion(omega), quat)
    return quaternion_normalize(quat)


class SamplingSpaceOps(ABC):

    """Manifold operations of one sampling space.

    Instances are singletons obtained by :func:`get_sampling_space`.
    Every method returns new arrays and never mutates its arguments.
    """

    space = None
    sample_dim = None
    input_dim = None
    vel_dim = None

    def __repr__(self):
        return '{}(sample_dim={}, input_dim={}, vel_dim={})'.format(
            self.__class__.__name__, self.sample_dim, self.input_dim,
            self.vel_dim)

    def _as_sample(self, sample):
        sample = np.asarray(sample, dtype=np.float64)
        if sample.shape != (self.sample_dim,):
            raise ConfigurationError(
                '{} sample must have shape ({},), got {}'.format(
                    self.space, self.sample_dim, sample.shape))
        return sample

    def _as_vel(self, vel):
        vel = np.asarray(vel, dtype=np.float64)
        if vel.shape != (self.vel_dim,):
            raise ConfigurationError(
                '{} velocity must have shape ({},), got {}'.format(
                    self.space, self.vel_dim, vel.shape))
        return vel

    @abstractmethod
    def pose_to_sample(self, pose):
        """Project a pose onto this space.

        Parameters
        ----------
        pose : diffrmap.coordinates.Coordinates
            full 6-DoF pose.

        Returns
        -------
        sample : numpy.ndarray
            sample of shape (sample_dim,).
        """

    @abstractmethod
    def sample_to_pose(self, sample):
        """Return the pose of a sample.

        Components that are not represented in this space are zero
        (identity rotation for translational spaces, zero translation
        for rotational spaces, z, roll and pitch for SE2).
        """

    @abstractmethod
    def sample_to_input(self, sample):
        """Return the classifier input of a sample."""

    @abstractmethod
    def input_vel_jacobian(self, sample):
        """Jacobian of the classifier input w.r.t. the velocity.

        Returns
        -------
        jacobian : numpy.ndarray
            matrix of shape (input_dim, vel_dim) equal to
            ``d sample_to_input(integrate_vel_to_sample(sample, v)) / dv``
            at ``v = 0``.
        """

    @abstractmethod
    def sample_to_cloud_pos(self, sample):
        """Return a 3d point to visualize a sample as a point cloud."""

    @abstractmethod
    def rel_sample(self, pre_sample, suc_sample):
        """Return the sample of ``inverse(pose(pre)) * pose(suc)``."""

    @abstractmethod
    def rel_vel_to_vel_mat(self, pre_sample, suc_sample, wrt_successor):
        """Jacobian of the relative sample velocity.

        Parameters
        ----------
        pre_sample : numpy.ndarray
            predecessor sample.
        suc_sample : numpy.ndarray
            successor sample.
        wrt_successor : bool
            if True, the Jacobian is taken w.r.t. the velocity of the
            successor, otherwise w.r.t. the velocity of the predecessor.

        Returns
        -------
        mat : numpy.ndarray
            matrix of shape (vel_dim, vel_dim) mapping the endpoint
            velocity to the velocity of ``rel_sample(pre, suc)``.
        """

    @abstractmethod
    def integrate_vel_to_sample(self, sample, vel):
        """Return the sample moved by ``vel`` over a unit time step."""

    @abstractmethod
    def sample_error(self, pre_sample, suc_sample):
        """Return the velocity taking ``pre_sample`` to ``suc_sample``."""

    @abstractmethod
    def get_random_pose(self, random_state=None):
        """Return a random pose in this space.

        Parameters
        ----------
        random_state : numpy.random.Generator or int or None
            source of randomness.
        """

    def identity_sample(self):
        """Return the sample of the identity pose."""
        return self.pose_to_sample(Coordinates())

    def mirror_sample(self, sample):
        """Return the left/right mirrored sample.

        Mirroring is only defined for the planar foot symmetry of SE2.
        """
        raise ConfigurationError(
            'Mirroring is not supported in {}'.format(self.space))

    def mirror_vel_mat(self, mat):
        """Return a velocity Jacobian with mirrored output rows."""
        raise ConfigurationError(
            'Mirroring is not supported in {}'.format(self.space))


class _EuclideanSpace(SamplingSpaceOps):

    def sample_to_input(self, sample):
        return self._as_sample(sample).copy()

    def input_vel_jacobian(self, sample):
        return np.eye(self.vel_dim)

    def rel_sample(self, pre_sample, suc_sample):
        return self._as_sample(suc_sample) - self._as_sample(pre_sample)

    def rel_vel_to_vel_mat(self, pre_sample, suc_sample, wrt_successor):
        if wrt_successor:
            return np.eye(self.vel_dim)
        return -np.eye(self.vel_dim)

    def integrate_vel_to_sample(self, sample, vel):
        return self._as_sample(sample) + self._as_vel(vel)

    def sample_error(self, pre_sample, suc_sample):
        return self._as_sample(suc_sample) - self._as_sample(pre_sample)


class R2Space(_EuclideanSpace):

    space = SamplingSpace.R2
    sample_dim = 2
    input_dim = 2
    vel_dim = 2

    def pose_to_sample(self, pose):
        return np.array(pose.translation[:2], dtype=np.float64)

    def sample_to_pose(self, sample):
        sample = self._as_sample(sample)
        return Coordinates(pos=[sample[0], sample[1], 0.0])

    def sample_to_cloud_pos(self, sample):
        sample = self._as_sample(sample)
        return np.array([sample[0], sample[1], 0.0])

    def get_random_pose(self, random_state=None):
        rng = np.random.default_rng(random_state)
        return Coordinates(pos=np.hstack([rng.uniform(-1.0, 1.0, 2), 0.0]))


class R3Space(_EuclideanSpace):

    space = SamplingSpace.R3
    sample_dim = 3
    input_dim = 3
    vel_dim = 3

    def pose_to_sample(self, pose):
        return np.array(pose.translation, dtype=np.float64)

    def sample_to_pose(self, sample):
        return Coordinates(pos=self._as_sample(sample))

    def sample_to_cloud_pos(self, sample):
        return self._as_sample(sample).copy()

    def get_random_pose(self, random_state=None):
        rng = np.random.default_rng(random_state)
        return Coordinates(pos=rng.uniform(-1.0, 1.0, 3))


class SO2Space(SamplingSpaceOps):

    space = SamplingSpace.SO2
    sample_dim = 1
    input_dim = 2
    vel_dim = 1

    def pose_to_sample(self, pose):
        return np.array([yaw_angle(pose.rotation)])

    def sample_to_pose(self, sample):
        sample = self._as_sample(sample)
        return Coordinates(rot=rotation_matrix_z(sample[0]))

    def sample_to_input(self, sample):
        theta = self._as_sample(sample)[0]
        return np.array([np.cos(theta), np.sin(theta)])

    def input_vel_jacobian(self, sample):
        theta = self._as_sample(sample)[0]
        return np.array([[-np.sin(theta)],
                         [np.cos(theta)]])

    def sample_to_cloud_pos(self, sample):
        theta = self._as_sample(sample)[0]
        return np.array([np.cos(theta), np.sin(theta), 0.0])

    def rel_sample(self, pre_sample, suc_sample):
        return np.array([wrap_angle(
            self._as_sample(suc_sample)[0] - self._as_sample(pre_sample)[0])])

    def rel_vel_to_vel_mat(self, pre_sample, suc_sample, wrt_successor):
        return np.array([[1.0 if wrt_successor else -1.0]])

    def integrate_vel_to_sample(self, sample, vel):
        return np.array([wrap_angle(
            self._as_sample(sample)[0] + self._as_vel(vel)[0])])

    def sample_error(self, pre_sample, suc_sample):
        return self.rel_sample(pre_sample, suc_sample)

    def get_random_pose(self, random_state=None):
        rng = np.random.default_rng(random_state)
        return Coordinates(rot=rotation_matrix_z(rng.uniform(-np.pi, np.pi)))


class SE2Space(SamplingSpaceOps):

    space = SamplingSpace.SE2
    sample_dim = 3
    input_dim = 4
    vel_dim = 3

    def pose_to_sample(self, pose):
        return np.array([pose.translation[0], pose.translation[1],
                         yaw_angle(pose.rotation)])

    def sample_to_pose(self, sample):
        sample = self._as_sample(sample)
        return Coordinates(pos=[sample[0], sample[1], 0.0],
                           rot=rotation_matrix_z(sample[2]))

    def sample_to_input(self, sample):
        sample = self._as_sample(sample)
        return np.array([sample[0], sample[1],
                         np.cos(sample[2]), np.sin(sample[2])])

    def input_vel_jacobian(self, sample):
        theta = self._as_sample(sample)[2]
        jac = np.zeros((4, 3))
        jac[0, 0] = 1.0
        jac[1, 1] = 1.0
        jac[2, 2] = -np.sin(theta)
        jac[3, 2] = np.cos(theta)
        return jac

    def sample_to_cloud_pos(self, sample):
        sample = self._as_sample(sample)
        return np.array([sample[0], sample[1], 0.0])

    def rel_sample(self, pre_sample, suc_sample):
        pre_sample = self._as_sample(pre_sample)
        suc_sample = self._as_sample(suc_sample)
        rot_inv = rotation_matrix_2d(pre_sample[2]).T
        return np.hstack([
            rot_inv.dot(suc_sample[:2] - pre_sample[:2]),
            wrap_angle(suc_sample[2] - pre_sample[2])])

    def rel_vel_to_vel_mat(self, pre_sample, suc_sample, wrt_successor):
        pre_sample = self._as_sample(pre_sample)
        suc_sample = self._as_sample(suc_sample)
        rot_inv = rotation_matrix_2d(pre_sample[2]).T
        mat = np.zeros((3, 3))
        if wrt_successor:
            mat[:2, :2] = rot_inv
            mat[2, 2] = 1.0
        else:
            diff = suc_sample[:2] - pre_sample[:2]
            mat[:2, :2] = -rot_inv
            mat[:2, 2] = rot_inv.dot([diff[1], -diff[0]])
            mat[2, 2] = -1.0
        return mat

    def integrate_vel_to_sample(self, sample, vel):
        sample = self._as_sample(sample)
        vel = self._as_vel(vel)
        return np.hstack([sample[:2] + vel[:2],
                          wrap_angle(sample[2] + vel[2])])

    def sample_error(self, pre_sample, suc_sample):
        pre_sample = self._as_sample(pre_sample)
        suc_sample = self._as_sample(suc_sample)
        return np.hstack([suc_sample[:2] - pre_sample[:2],
                          wrap_angle(suc_sample[2] - pre_sample[2])])

    def get_random_pose(self, random_state=None):
        rng = np.random.default_rng(random_state)
        return Coordinates(pos=np.hstack([rng.uniform(-1.0, 1.0, 2), 0.0]),
                           rot=rotation_matrix_z(rng.uniform(-np.pi, np.pi)))

    def mirror_sample(self, sample):
        # reflection about the xz plane flips y and yaw
        sample = self._as_sample(sample).copy()
        sample[1:] *= -1
        return sample

    def mirror_vel_mat(self, mat):
        mat = np.array(mat, dtype=np.float64)
        mat[-2:] *= -1
        return mat


class SO3Space(SamplingSpaceOps):

    space = SamplingSpace.SO3
    sample_dim = 4
    input_dim = 9
    vel_dim = 3

    def pose_to_sample(self, pose):
        return matrix2quaternion(pose.rotation)

    def sample_to_pose(self, sample):
        return Coordinates(
            rot=quaternion2matrix(self._as_sample(sample), normalize=True))

    def sample_to_input(self, sample):
        return quaternion2matrix(
            self._as_sample(sample), normalize=True).ravel()

    def input_vel_jacobian(self, sample):
        return _so3_input_jacobian(
            quaternion2matrix(self._as_sample(sample), normalize=True))

    def sample_to_cloud_pos(self, sample):
        return quaternion2matrix(
            self._as_sample(sample), normalize=True)[:, 0]

    def rel_sample(self, pre_sample, suc_sample):
        pre_rot = quaternion2matrix(self._as_sample(pre_sample),
                                    normalize=True)
        suc_rot = quaternion2matrix(self._as_sample(suc_sample),
                                    normalize=True)
        return matrix2quaternion(pre_rot.T.dot(suc_rot))

    def rel_vel_to_vel_mat(self, pre_sample, suc_sample, wrt_successor):
        pre_rot = quaternion2matrix(self._as_sample(pre_sample),
                                    normalize=True)
        if wrt_successor:
            return pre_rot.T.copy()
        return -pre_rot.T

    def integrate_vel_to_sample(self, sample, vel):
        return _integrate_quaternion(self._as_sample(sample),
                                     self._as_vel(vel))

    def sample_error(self, pre_sample, suc_sample):
        pre_rot = quaternion2matrix(self._as_sample(pre_sample),
                                    normalize=True)
        suc_rot = quaternion2matrix(self._as_sample(suc_sample),
                                    normalize=True)
        return matrix_log(suc_rot.dot(pre_rot.T))

    def get_random_pose(self, random_state=None):
        return Coordinates(rot=quaternion2matrix(
            random_quaternion(random_state), normalize=True))


class SE3Space(SamplingSpaceOps):

    space = SamplingSpace.SE3
    sample_dim = 7
    input_dim = 12
    vel_dim = 6

    def pose_to_sample(self, pose):
        return np.hstack([np.asarray(pose.translation, dtype=np.float64),
                          matrix2quaternion(pose.rotation)])

    def sample_to_pose(self, sample):
        sample = self._as_sample(sample)
        return Coordinates(pos=sample[:3],
                           rot=quaternion2matrix(sample[3:], normalize=True))

    def sample_to_input(self, sample):
        sample = self._as_sample(sample)
        return np.hstack([
            sample[:3],
            quaternion2matrix(sample[3:], normalize=True).ravel()])

    def input_vel_jacobian(self, sample):
        sample = self._as_sample(sample)
        jac = np.zeros((12, 6))
        jac[:3, :3] = np.eye(3)
        jac[3:, 3:] = _so3_input_jacobian(
            quaternion2matrix(sample[3:], normalize=True))
        return jac

    def sample_to_cloud_pos(self, sample):
        return self._as_sample(sample)[:3].copy()

    def rel_sample(self, pre_sample, suc_sample):
        pre_sample = self._as_sample(pre_sample)
        suc_sample = self._as_sample(suc_sample)
        pre_rot_inv = quaternion2matrix(pre_sample[3:], normalize=True).T
        suc_rot = quaternion2matrix(suc_sample[3:], normalize=True)
        return np.hstack([
            pre_rot_inv.dot(suc_sample[:3] - pre_sample[:3]),
            matrix2quaternion(pre_rot_inv.dot(suc_rot))])

    def rel_vel_to_vel_mat(self, pre_sample, suc_sample, wrt_successor):
        pre_sample = self._as_sample(pre_sample)
        suc_sample = self._as_sample(suc_sample)
        pre_rot_inv = quaternion2matrix(pre_sample[3:], normalize=True).T
        mat = np.zeros((6, 6))
        if wrt_successor:
            mat[:3, :3] = pre_rot_inv
            mat[3:, 3:] = pre_rot_inv
        else:
            diff = suc_sample[:3] - pre_sample[:3]
            mat[:3, :3] = -pre_rot_inv
            mat[:3, 3:] = pre_rot_inv.dot(outer_product_matrix(diff))
            mat[3:, 3:] = -pre_rot_inv
        return mat

    def integrate_vel_to_sample(self, sample, vel):
        sample = self._as_sample(sample)
        vel = self._as_vel(vel)
        return np.hstack([sample[:3] + vel[:3],
                          _integrate_quaternion(sample[3:], vel[3:])])

    def sample_error(self, pre_sample, suc_sample):
        pre_sample = self._as_sample(pre_sample)
        suc_sample = self._as_sample(suc_sample)
        pre_rot = quaternion2matrix(pre_sample[3:], normalize=True)
        suc_rot = quaternion2matrix(suc_sample[3:], normalize=True)
        return np.hstack([suc_sample[:3] - pre_sample[:3],
                          matrix_log(suc_rot.dot(pre_rot.T))])

    def get_random_pose(self, random_state=None):
        rng = np.random.default_rng(random_state)
        return Coordinates(
            pos=rng.uniform(-1.0, 1.0, 3),
            rot=quaternion2matrix(random_quaternion(rng), normalize=True))


_SAMPLING_SPACES = {
    SamplingSpace.R2: R2Space(),
    SamplingSpace.SO2: SO2Space(),
    SamplingSpace.SE2: SE2Space(),
    SamplingSpace.R3: R3Space(),
    SamplingSpace.SO3: SO3Space(),
    SamplingSpace.SE3: SE3Space(),
}


def to_sampling_space(space):
    """Convert a tag, a name or a SamplingSpace to SamplingSpace.

    Parameters
    ----------
    space : SamplingSpace or int or str
        e.g. ``SamplingSpace.SE2``, ``23`` or ``'se2'``.

    Raises
    ------
    diffrmap.exceptions.ConfigurationError
        If the space is not supported.
    """
    if isinstance(space, SamplingSpace):
        return space
    if isinstance(space, str):
        try:
            return SamplingSpace[space.upper()]
        except KeyError:
            raise ConfigurationError(
                'Unsupported sampling space: {}'.format(space))
    if isinstance(space, (int, np.integer)) and not isinstance(space, bool):
        try:
            return SamplingSpace(int(space))
        except ValueError:
            raise ConfigurationError(
                'Unsupported sampling space: {}'.format(space))
    raise ConfigurationError(
        'Unsupported sampling space: {!r}'.format(space))


def get_sampling_space(space):
    """Return the operations of a sampling space.

    Parameters
    ----------
    space : SamplingSpace or int or str or SamplingSpaceOps

    Returns
    -------
    ops : SamplingSpaceOps
        singleton operations object of the space.

    Examples
    --------
    >>> from diffrmap.sampling_space import get_sampling_space
    >>> get_sampling_space('SE3').vel_dim
    6
    """
    if isinstance(space, SamplingSpaceOps):
        return space
    return _SAMPLING_SPACES[to_sampling_space(space)]
