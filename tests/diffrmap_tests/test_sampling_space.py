import unittest

import numpy as np
from numpy import testing

from diffrmap.coordinates import Coordinates
from diffrmap.exceptions import ConfigurationError
from diffrmap.sampling_space import get_sampling_space
from diffrmap.sampling_space import SamplingSpace
from diffrmap.sampling_space import to_sampling_space


ALL_SPACES = list(SamplingSpace)


def random_sample(ops, rng):
    return ops.pose_to_sample(ops.get_random_pose(rng))


def assert_pose_almost_equal(ops, pose1, pose2, decimal=6):
    testing.assert_almost_equal(
        ops.sample_to_input(ops.pose_to_sample(pose1)),
        ops.sample_to_input(ops.pose_to_sample(pose2)),
        decimal=decimal)


class TestSamplingSpace(unittest.TestCase):

    @classmethod
    def setup_class(cls):
        cls.rng = np.random.default_rng(0)

    def test_dimensions(self):
        dims = {SamplingSpace.R2: (2, 2, 2),
                SamplingSpace.SO2: (1, 2, 1),
                SamplingSpace.SE2: (3, 4, 3),
                SamplingSpace.R3: (3, 3, 3),
                SamplingSpace.SO3: (4, 9, 3),
                SamplingSpace.SE3: (7, 12, 6)}
        for space, (sample_dim, input_dim, vel_dim) in dims.items():
            ops = get_sampling_space(space)
            self.assertEqual(ops.space, space)
            self.assertEqual(ops.sample_dim, sample_dim)
            self.assertEqual(ops.input_dim, input_dim)
            self.assertEqual(ops.vel_dim, vel_dim)
            sample = random_sample(ops, self.rng)
            self.assertEqual(sample.shape, (sample_dim,))
            self.assertEqual(ops.sample_to_input(sample).shape,
                             (input_dim,))
            self.assertEqual(ops.sample_to_cloud_pos(sample).shape, (3,))

    def test_to_sampling_space(self):
        self.assertEqual(to_sampling_space('se2'), SamplingSpace.SE2)
        self.assertEqual(to_sampling_space(33), SamplingSpace.SE3)
        self.assertEqual(to_sampling_space(SamplingSpace.R2),
                         SamplingSpace.R2)
        self.assertIs(get_sampling_space('R3'),
                      get_sampling_space(SamplingSpace.R3))
        for invalid in ('SE4', 0, True, 2.0, None):
            with self.assertRaises(ConfigurationError):
                to_sampling_space(invalid)

    def test_shape_mismatch(self):
        ops = get_sampling_space('SE2')
        with self.assertRaises(ConfigurationError):
            ops.sample_to_input(np.zeros(4))
        with self.assertRaises(ConfigurationError):
            ops.integrate_vel_to_sample(np.zeros(3), np.zeros(2))

    def test_identity_sample(self):
        for space in ALL_SPACES:
            ops = get_sampling_space(space)
            identity = ops.identity_sample()
            testing.assert_almost_equal(
                ops.sample_to_pose(identity).T(), np.eye(4))

    def test_pose_sample_round_trip(self):
        for space in ALL_SPACES:
            ops = get_sampling_space(space)
            for _ in range(5):
                sample = random_sample(ops, self.rng)
                testing.assert_almost_equal(
                    ops.pose_to_sample(ops.sample_to_pose(sample)), sample)

    def test_integrate_and_error(self):
        for space in ALL_SPACES:
            ops = get_sampling_space(space)
            for _ in range(5):
                sample = random_sample(ops, self.rng)
                vel = self.rng.uniform(-0.3, 0.3, ops.vel_dim)
                integrated = ops.integrate_vel_to_sample(sample, vel)
                testing.assert_almost_equal(
                    ops.sample_error(sample, integrated), vel)
                testing.assert_almost_equal(
                    ops.sample_error(sample, sample), np.zeros(ops.vel_dim))

    def test_integrate_does_not_mutate(self):
        ops = get_sampling_space('SE3')
        sample = random_sample(ops, self.rng)
        sample_copy = sample.copy()
        ops.integrate_vel_to_sample(sample, np.full(6, 0.1))
        ops.rel_sample(sample, sample)
        testing.assert_equal(sample, sample_copy)

    def test_rel_sample_composition(self):
        for space in ALL_SPACES:
            ops = get_sampling_space(space)
            for _ in range(5):
                pre = random_sample(ops, self.rng)
                suc = random_sample(ops, self.rng)
                rel = ops.rel_sample(pre, suc)
                assert_pose_almost_equal(
                    ops,
                    ops.sample_to_pose(pre) * ops.sample_to_pose(rel),
                    ops.sample_to_pose(suc))
                testing.assert_almost_equal(
                    ops.sample_to_input(ops.rel_sample(pre, pre)),
                    ops.sample_to_input(ops.identity_sample()))

    def test_input_vel_jacobian(self):
        eps = 1e-6
        for space in ALL_SPACES:
            ops = get_sampling_space(space)
            sample = random_sample(ops, self.rng)
            jac = ops.input_vel_jacobian(sample)
            self.assertEqual(jac.shape, (ops.input_dim, ops.vel_dim))
            jac_numerical = np.zeros(jac.shape)
            for k in range(ops.vel_dim):
                vel = np.zeros(ops.vel_dim)
                vel[k] = eps
                jac_numerical[:, k] = (
                    ops.sample_to_input(ops.integrate_vel_to_sample(
                        sample, vel))
                    - ops.sample_to_input(ops.integrate_vel_to_sample(
                        sample, -vel))) / (2 * eps)
            testing.assert_almost_equal(jac, jac_numerical, decimal=5)

    def test_rel_vel_to_vel_mat(self):
        eps = 1e-6
        for space in ALL_SPACES:
            ops = get_sampling_space(space)
            pre = random_sample(ops, self.rng)
            suc = random_sample(ops, self.rng)
            rel = ops.rel_sample(pre, suc)
            for wrt_successor in (True, False):
                mat = ops.rel_vel_to_vel_mat(pre, suc, wrt_successor)
                mat_numerical = np.zeros(mat.shape)
                for k in range(ops.vel_dim):
                    vel = np.zeros(ops.vel_dim)
                    vel[k] = eps
                    if wrt_successor:
                        moved = ops.rel_sample(
                            pre, ops.integrate_vel_to_sample(suc, vel))
                    else:
                        moved = ops.rel_sample(
                            ops.integrate_vel_to_sample(pre, vel), suc)
                    mat_numerical[:, k] = ops.sample_error(rel, moved) / eps
                testing.assert_almost_equal(mat, mat_numerical, decimal=4)

    def test_mirror(self):
        ops = get_sampling_space('SE2')
        sample = np.array([0.1, 0.2, 0.3])
        testing.assert_almost_equal(ops.mirror_sample(sample),
                                    [0.1, -0.2, -0.3])
        testing.assert_almost_equal(
            ops.mirror_sample(ops.mirror_sample(sample)), sample)
        mat = np.arange(9.0).reshape(3, 3)
        mirrored = ops.mirror_vel_mat(mat)
        testing.assert_equal(mirrored[0], mat[0])
        testing.assert_equal(mirrored[1:], -mat[1:])
        for space in ('R2', 'R3', 'SO2', 'SO3', 'SE3'):
            ops = get_sampling_space(space)
            with self.assertRaises(ConfigurationError):
                ops.mirror_sample(ops.identity_sample())

    def test_se2_projection(self):
        ops = get_sampling_space('SE2')
        pose = Coordinates(pos=[0.5, -0.2, 0.8], rot=[0.4, 0.0, 0.0])
        testing.assert_almost_equal(ops.pose_to_sample(pose),
                                    [0.5, -0.2, 0.4])
        testing.assert_almost_equal(ops.sample_to_cloud_pos([0.5, -0.2, 0.4]),
                                    [0.5, -0.2, 0.0])

    def test_so2_wrap(self):
        ops = get_sampling_space('SO2')
        sample = ops.integrate_vel_to_sample(np.array([3.0]), np.array([0.5]))
        self.assertLess(sample[0], 0.0)
        testing.assert_almost_equal(
            ops.sample_error(np.array([3.0]), sample), [0.5])
