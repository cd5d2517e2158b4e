import numpy as np


# epsilon for testing whether a number is close to zero
_EPS = np.finfo(float).eps * 4.0


def wrap_angle(theta):
    """Wrap angle into (-pi, pi].

    Examples
    --------
    >>> from diffrmap.coordinates.math import wrap_angle
    >>> wrap_angle(3 * np.pi / 2)
    -1.5707963267948966
    """
    wrapped = np.mod(np.asarray(theta, dtype=np.float64) + np.pi,
                     2 * np.pi) - np.pi
    wrapped = np.where(wrapped == -np.pi, np.pi, wrapped)
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


def outer_product_matrix(v):
    """Returns the skew symmetric matrix of given v.

    The returned matrix ``[v]x`` satisfies ``[v]x w == cross(v, w)``.

    Parameters
    ----------
    v : list or numpy.ndarray
        vector of shape (3,)

    Returns
    -------
    matrix : numpy.ndarray
        3x3 skew symmetric matrix

    Examples
    --------
    >>> from diffrmap.coordinates.math import outer_product_matrix
    >>> outer_product_matrix([1, 2, 3])
    array([[ 0., -3.,  2.],
           [ 3.,  0., -1.],
           [-2.,  1.,  0.]])
    """
    x, y, z = np.asarray(v, dtype=np.float64)
    return np.array([[0.0, -z, y],
                     [z, 0.0, -x],
                     [-y, x, 0.0]])


def rotation_matrix_z(theta):
    """Return the rotation matrix about z axis by theta radians."""
    c = np.cos(theta)
    s = np.sin(theta)
    return np.array([[c, -s, 0.0],
                     [s, c, 0.0],
                     [0.0, 0.0, 1.0]])


def rotation_matrix_2d(theta):
    """Return the 2x2 planar rotation matrix of theta radians."""
    c = np.cos(theta)
    s = np.sin(theta)
    return np.array([[c, -s],
                     [s, c]])


def yaw_angle(matrix):
    """Return the yaw angle of a rotation matrix.

    The yaw is the z rotation of the yaw-pitch-roll decomposition,
    which is the heading of the x axis projected onto the xy plane.

    Examples
    --------
    >>> from diffrmap.coordinates.math import rotation_matrix_z
    >>> from diffrmap.coordinates.math import yaw_angle
    >>> yaw_angle(rotation_matrix_z(0.5))
    0.5
    """
    matrix = np.asarray(matrix)
    if np.sqrt(matrix[1, 0] ** 2 + matrix[0, 0] ** 2) < _EPS:
        return 0.0
    return float(np.arctan2(matrix[1, 0], matrix[0, 0]))


def rpy_matrix(az, ay, ax):
    """Return rotation matrix from yaw-pitch-roll.

    The resulting matrix is ``Rz(az) Ry(ay) Rx(ax)``.

    Parameters
    ----------
    az : float
        rotated around z-axis(yaw) in radian.
    ay : float
        rotated around y-axis(pitch) in radian.
    ax : float
        rotated around x-axis(roll) in radian.

    Returns
    -------
    r : numpy.ndarray
        rotation matrix
    """
    cy, sy = np.cos(ay), np.sin(ay)
    cx, sx = np.cos(ax), np.sin(ax)
    ry = np.array([[cy, 0.0, sy],
                   [0.0, 1.0, 0.0],
                   [-sy, 0.0, cy]])
    rx = np.array([[1.0, 0.0, 0.0],
                   [0.0, cx, -sx],
                   [0.0, sx, cx]])
    return rotation_matrix_z(az).dot(ry).dot(rx)


def matrix2quaternion(m):
    """Returns quaternion of given rotation matrix.

    Parameters
    ----------
    m : list or numpy.ndarray
        3x3 rotation matrix

    Returns
    -------
    quaternion : numpy.ndarray
        quaternion [w, x, y, z] order with non-negative w

    Examples
    --------
    >>> import numpy as np
    >>> from diffrmap.coordinates.math import matrix2quaternion
    >>> matrix2quaternion(np.eye(3))
    array([1., 0., 0., 0.])
    """
    m = np.asarray(m, dtype=np.float64)
    trace = np.trace(m)
    if trace > 0.0:
        s = 2.0 * np.sqrt(trace + 1.0)
        q = np.array([0.25 * s,
                      (m[2, 1] - m[1, 2]) / s,
                      (m[0, 2] - m[2, 0]) / s,
                      (m[1, 0] - m[0, 1]) / s])
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = 2.0 * np.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
        q = np.array([(m[2, 1] - m[1, 2]) / s,
                      0.25 * s,
                      (m[0, 1] + m[1, 0]) / s,
                      (m[0, 2] + m[2, 0]) / s])
    elif m[1, 1] > m[2, 2]:
        s = 2.0 * np.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
        q = np.array([(m[0, 2] - m[2, 0]) / s,
                      (m[0, 1] + m[1, 0]) / s,
                      0.25 * s,
                      (m[1, 2] + m[2, 1]) / s])
    else:
        s = 2.0 * np.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
        q = np.array([(m[1, 0] - m[0, 1]) / s,
                      (m[0, 2] + m[2, 0]) / s,
                      (m[1, 2] + m[2, 1]) / s,
                      0.25 * s])
    q = quaternion_normalize(q)
    if q[0] < 0.0:
        q = -q
    return q


def quaternion2matrix(q, normalize=False):
    """Returns rotation matrix of given quaternion.

    Parameters
    ----------
    q : list or numpy.ndarray
        quaternion [w, x, y, z] order
    normalize : bool
        if True, normalize the quaternion before conversion.

    Returns
    -------
    rot : numpy.ndarray
        3x3 rotation matrix

    Examples
    --------
    >>> from diffrmap.coordinates.math import quaternion2matrix
    >>> quaternion2matrix([1, 0, 0, 0])
    array([[1., 0., 0.],
           [0., 1., 0.],
           [0., 0., 1.]])
    """
    q = np.asarray(q, dtype=np.float64)
    if normalize:
        q = quaternion_normalize(q)
    elif not np.isclose(np.linalg.norm(q), 1.0, atol=1e-6):
        raise ValueError('quaternion must be unit norm, '
                         'got norm {}'.format(np.linalg.norm(q)))
    w, x, y, z = q
    return np.array([
        [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - w * z),
         2.0 * (x * z + w * y)],
        [2.0 * (x * y + w * z), 1.0 - 2.0 * (x * x + z * z),
         2.0 * (y * z - w * x)],
        [2.0 * (x * z - w * y), 2.0 * (y * z + w * x),
         1.0 - 2.0 * (x * x + y * y)]])


def quaternion_multiply(quaternion1, quaternion0):
    """Return multiplication of two quaternions.

    Parameters
    ----------
    quaternion1 : list or numpy.ndarray
        left quaternion [w, x, y, z]
    quaternion0 : list or numpy.ndarray
        right quaternion [w, x, y, z]

    Returns
    -------
    quaternion : numpy.ndarray
        ``quaternion1 * quaternion0``
    """
    w0, x0, y0, z0 = quaternion0
    w1, x1, y1, z1 = quaternion1
    return np.array([
        -x1 * x0 - y1 * y0 - z1 * z0 + w1 * w0,
        x1 * w0 + y1 * z0 - z1 * y0 + w1 * x0,
        -x1 * z0 + y1 * w0 + z1 * x0 + w1 * y0,
        x1 * y0 - y1 * x0 + z1 * w0 + w1 * z0], dtype=np.float64)


def quaternion_normalize(q):
    """Return unit quaternion of given q.

    A zero quaternion is mapped to the identity quaternion.
    """
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    if norm < _EPS:
        return np.array([1.0, 0.0, 0.0, 0.0])
    return q / norm


def rotation_vector_to_quaternion(rvec):
    """Convert a rotation vector to a quaternion [w, x, y, z]."""
    rvec = np.asarray(rvec, dtype=np.float64)
    theta = np.linalg.norm(rvec)
    if theta < _EPS:
        return quaternion_normalize(np.hstack([1.0, 0.5 * rvec]))
    axis = rvec / theta
    return np.hstack([np.cos(theta / 2.0), np.sin(theta / 2.0) * axis])


def matrix_log(m):
    """Returns matrix log of given rotation matrix.

    The norm of the returned rotation vector is in [0, pi].

    Parameters
    ----------
    m : list or numpy.ndarray
        3x3 rotation matrix

    Returns
    -------
    matrixlog : numpy.ndarray
        rotation vector of shape (3, )

    Examples
    --------
    >>> import numpy as np
    >>> from diffrmap.coordinates.math import matrix_log
    >>> matrix_log(np.eye(3))
    array([0., 0., 0.])
    """
    q = matrix2quaternion(m)
    q_w = q[0]
    q_xyz = q[1:]
    sin_half = np.linalg.norm(q_xyz)
    if sin_half < 1e-8:
        # first order expansion of 2 * atan2(|v|, w) * v / |v|
        return 2.0 * q_xyz / q_w
    theta = 2.0 * np.arctan2(sin_half, q_w)
    return theta * q_xyz / sin_half


def random_quaternion(random_state=None):
    """Generate uniform random unit quaternion [w, x, y, z].

    Parameters
    ----------
    random_state : numpy.random.Generator or int or None
        source of randomness.
    """
    rng = np.random.default_rng(random_state)
    rand = rng.random(3)
    r1 = np.sqrt(1.0 - rand[0])
    r2 = np.sqrt(rand[0])
    t1 = 2.0 * np.pi * rand[1]
    t2 = 2.0 * np.pi * rand[2]
    q = np.array([np.cos(t2) * r2, np.sin(t1) * r1,
                  np.cos(t1) * r1, np.sin(t2) * r2])
    if q[0] < 0.0:
        q = -q
    return q


def sr_inverse(J, k=1.0, weight_vector=None):
    """Returns SR-inverse of given J.

    Definition of SR-inverse is following.
    :math:`J^* = W J^T (J W J^T + k I_m)^{-1}`

    Parameters
    ----------
    J : numpy.ndarray
        jacobian of shape (m, n)
    k : float
        damping weight
    weight_vector : None or numpy.ndarray
        weight of each column. If None, identity.

    Returns
    -------
    sr_inverse : numpy.ndarray
        SR-inverse of shape (n, m)
    """
    J = np.asarray(J, dtype=np.float64)
    if weight_vector is None:
        J_w = J.T
    else:
        J_w = np.asarray(weight_vector)[:, None] * J.T
    m = J.shape[0]
    return J_w.dot(np.linalg.inv(J.dot(J_w) + k * np.eye(m)))
