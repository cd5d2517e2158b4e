import numpy as np

from diffrmap.coordinates.math import matrix2quaternion
from diffrmap.coordinates.math import quaternion2matrix
from diffrmap.coordinates.math import rpy_matrix
from diffrmap.coordinates.math import yaw_angle


def _check_valid_rotation(rotation):
    """Checks that the given rotation matrix is valid."""
    rotation = np.array(rotation, dtype=np.float64)
    if rotation.shape != (3, 3):
        raise ValueError('Rotation must be specified as a 3x3 ndarray')
    if np.abs(np.linalg.det(rotation) - 1.0) > 1e-3:
        raise ValueError('Illegal rotation. Must have determinant == 1.0, '
                         'get {}'.format(np.linalg.det(rotation)))
    return rotation


def _check_valid_translation(translation):
    """Checks that the translation vector is valid."""
    translation = np.array(translation, dtype=np.float64).squeeze()
    if translation.shape != (3,):
        raise ValueError(
            'Translation must be specified as a 3-vector, '
            '3x1 ndarray, or 1x3 ndarray')
    return translation


class Coordinates(object):

    """Rigid body pose made of a translation and a rotation matrix.

    This is the pose type exchanged with sampling spaces, planners and
    the kinematics collaborator.

    Parameters
    ----------
    pos : list or numpy.ndarray or None
        shape of (3,) translation vector, or 4x4 homogeneous
        transformation matrix. If a homogeneous transformation matrix
        is given, `rot` is ignored.
    rot : list or numpy.ndarray or None
        3x3 rotation matrix, [yaw, pitch, roll] or quaternion
        [w, x, y, z]. If None, the identity matrix.
    """

    def __init__(self, pos=None, rot=None):
        if pos is not None:
            T = np.array(pos, dtype=np.float64)
            if T.shape == (4, 4):
                pos = T[:3, 3]
                rot = T[:3, :3]
        self._rotation = np.eye(3)
        self._translation = np.zeros(3)
        if rot is not None:
            self.rotation = rot
        if pos is not None:
            self.translation = pos

    @property
    def rotation(self):
        """Return 3x3 rotation matrix of this coordinates."""
        return self._rotation

    @rotation.setter
    def rotation(self, rotation):
        rotation = np.array(rotation, dtype=np.float64)
        if rotation.shape == (3,):
            rotation = rpy_matrix(*rotation)
        elif rotation.shape == (4,):
            rotation = quaternion2matrix(rotation, normalize=True)
        self._rotation = _check_valid_rotation(rotation)

    @property
    def translation(self):
        """Return translation vector of this coordinates."""
        return self._translation

    @translation.setter
    def translation(self, translation):
        self._translation = _check_valid_translation(translation)

    @property
    def quaternion(self):
        """Return rotation of this coordinates as quaternion [w, x, y, z]."""
        return matrix2quaternion(self._rotation)

    @property
    def yaw(self):
        return yaw_angle(self._rotation)

    def T(self):
        """Return 4x4 homogeneous transformation matrix.

        Examples
        --------
        >>> from diffrmap.coordinates import Coordinates
        >>> Coordinates(pos=[1, 2, 3]).T()
        array([[1., 0., 0., 1.],
               [0., 1., 0., 2.],
               [0., 0., 1., 3.],
               [0., 0., 0., 1.]])
        """
        matrix = np.eye(4)
        matrix[:3, :3] = self._rotation
        matrix[:3, 3] = self._translation
        return matrix

    def transform_vector(self, v):
        """Return vector given in this frame expressed in the world frame.

        Parameters
        ----------
        v : numpy.ndarray
            3d vector or batch of vectors of shape (n, 3).
        """
        v = np.array(v, dtype=np.float64)
        return v.dot(self._rotation.T) + self._translation

    def inverse_transformation(self):
        """Return a new coordinates of the inverse transformation.

        .. math::
            \\left(
                \\begin{array}{cc}
                  R^{T} & - R^{T} p  \\\\
                  0 & 1
                \\end{array}
            \\right)
        """
        rot_inv = self._rotation.T
        return Coordinates(pos=-rot_inv.dot(self._translation),
                           rot=rot_inv)

    def transformation(self, c2):
        """Return pose of c2 expressed in this frame.

        This is ``inverse(self) * c2``.
        """
        return self.inverse_transformation() * c2

    def __mul__(self, other_c):
        """Return ``T_self T_other`` as new Coordinates."""
        return Coordinates(
            pos=self._rotation.dot(other_c.translation) + self._translation,
            rot=self._rotation.dot(other_c.rotation))

    def __repr__(self):
        return self.__str__()

    def __str__(self):
        pos = self._translation
        return "#<{0} {1:.3f} {2:.3f} {3:.3f} / yaw {4:.3f}>".format(
            self.__class__.__name__, pos[0], pos[1], pos[2], self.yaw)

