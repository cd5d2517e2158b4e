import unittest

import numpy as np
from numpy import pi
from numpy import testing

from diffrmap.coordinates import Coordinates
from diffrmap.coordinates.math import matrix2quaternion
from diffrmap.coordinates.math import matrix_log
from diffrmap.coordinates.math import outer_product_matrix
from diffrmap.coordinates.math import quaternion2matrix
from diffrmap.coordinates.math import quaternion_multiply
from diffrmap.coordinates.math import random_quaternion
from diffrmap.coordinates.math import rotation_matrix_z
from diffrmap.coordinates.math import rotation_vector_to_quaternion
from diffrmap.coordinates.math import rpy_matrix
from diffrmap.coordinates.math import sr_inverse
from diffrmap.coordinates.math import wrap_angle
from diffrmap.coordinates.math import yaw_angle


class TestMath(unittest.TestCase):

    def test_wrap_angle(self):
        self.assertAlmostEqual(wrap_angle(3 * pi / 2), -pi / 2)
        self.assertAlmostEqual(wrap_angle(-3 * pi / 2), pi / 2)
        self.assertAlmostEqual(wrap_angle(pi), pi)
        self.assertAlmostEqual(wrap_angle(-pi), pi)
        testing.assert_almost_equal(
            wrap_angle(np.array([0.1, 2 * pi + 0.1])), [0.1, 0.1])

    def test_outer_product_matrix(self):
        v = np.array([1.0, -2.0, 0.5])
        w = np.array([0.3, 0.2, -1.0])
        testing.assert_almost_equal(
            outer_product_matrix(v).dot(w), np.cross(v, w))

    def test_yaw_angle(self):
        self.assertAlmostEqual(yaw_angle(rotation_matrix_z(0.5)), 0.5)
        self.assertAlmostEqual(yaw_angle(rpy_matrix(-2.0, 0.1, 0.2)), -2.0)

    def test_quaternion_matrix_conversion(self):
        for seed in range(10):
            q = random_quaternion(seed)
            rot = quaternion2matrix(q)
            testing.assert_almost_equal(rot.dot(rot.T), np.eye(3))
            q2 = matrix2quaternion(rot)
            self.assertGreaterEqual(q2[0], 0.0)
            testing.assert_almost_equal(quaternion2matrix(q2), rot)

    def test_quaternion2matrix_not_unit(self):
        with self.assertRaises(ValueError):
            quaternion2matrix([2.0, 0.0, 0.0, 0.0])
        testing.assert_almost_equal(
            quaternion2matrix([2.0, 0.0, 0.0, 0.0], normalize=True),
            np.eye(3))

    def test_quaternion_multiply(self):
        q0 = random_quaternion(0)
        q1 = random_quaternion(1)
        testing.assert_almost_equal(
            quaternion2matrix(quaternion_multiply(q1, q0)),
            quaternion2matrix(q1).dot(quaternion2matrix(q0)))

    def test_matrix_log_rotation_vector(self):
        for omega in ([0.0, 0.0, 0.0],
                      [1e-10, 0.0, 0.0],
                      [0.3, -0.2, 0.1],
                      [0.0, 0.0, pi - 1e-3]):
            omega = np.array(omega)
            rot = quaternion2matrix(rotation_vector_to_quaternion(omega))
            testing.assert_almost_equal(matrix_log(rot), omega)
        testing.assert_almost_equal(
            quaternion2matrix(rotation_vector_to_quaternion([0, 0, 0.5])),
            rotation_matrix_z(0.5))

    def test_sr_inverse(self):
        J = np.array([[1.0, 2.0, 0.0],
                      [0.0, 1.0, 1.0]])
        testing.assert_almost_equal(
            J.dot(sr_inverse(J, k=0.0)), np.eye(2))
        self.assertEqual(sr_inverse(J, k=1.0).shape, (3, 2))


class TestCoordinates(unittest.TestCase):

    def test_init(self):
        c = Coordinates()
        testing.assert_equal(c.translation, np.zeros(3))
        testing.assert_equal(c.rotation, np.eye(3))

        c = Coordinates(pos=[1, 2, 3], rot=[0.5, 0, 0])
        testing.assert_almost_equal(c.rotation, rotation_matrix_z(0.5))
        self.assertAlmostEqual(c.yaw, 0.5)

        T = np.eye(4)
        T[:3, 3] = [1, 2, 3]
        testing.assert_equal(Coordinates(pos=T).translation, [1, 2, 3])

    def test_invalid_rotation(self):
        with self.assertRaises(ValueError):
            Coordinates(rot=np.ones((3, 3)))

    def test_transformation(self):
        c1 = Coordinates(pos=[1, 0, 0], rot=[pi / 2, 0, 0])
        c2 = Coordinates(pos=[1, 1, 0], rot=[pi, 0, 0])
        rel = c1.transformation(c2)
        testing.assert_almost_equal(rel.translation, [1, 0, 0])
        testing.assert_almost_equal(rel.rotation, rotation_matrix_z(pi / 2))
        testing.assert_almost_equal((c1 * rel).T(), c2.T())

    def test_inverse_transformation(self):
        c = Coordinates(pos=[0.3, -0.2, 0.5], rot=[0.1, 0.2, 0.3])
        testing.assert_almost_equal(
            (c * c.inverse_transformation()).T(), np.eye(4))
        testing.assert_almost_equal(c.inverse_transformation().T(),
                                    np.linalg.inv(c.T()))

    def test_transform_vector(self):
        c = Coordinates(pos=[1, 0, 0], rot=[pi / 2, 0, 0])
        testing.assert_almost_equal(c.transform_vector([1, 0, 0]), [1, 1, 0])
        testing.assert_almost_equal(
            c.transform_vector([[1, 0, 0], [0, 1, 0]]),
            [[1, 1, 0], [0, 0, 0]])

