import os.path as osp
import shutil
import tempfile
import unittest

import numpy as np
from numpy import testing

from diffrmap.classifier import ReachabilityClassifier
from diffrmap.exceptions import ConfigurationError
from diffrmap.grid_map import GridMap
from diffrmap.grid_map import ratios_to_indices


def make_disc_classifier(space='R2', center=(0.0, 0.0)):
    # single support vector, positive within ~0.26 of the center
    support_vectors = np.array([center])
    return ReachabilityClassifier(space, support_vectors, [1.0], rho=0.5,
                                  gamma=10.0)


class TestGridMap(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_ratios_to_indices(self):
        testing.assert_equal(
            ratios_to_indices([0.0, 0.5, 1.0, 1.5, -0.5], [10] * 5),
            [0, 5, 9, 9, 0])
        testing.assert_equal(ratios_to_indices([np.nan, 0.99], [4, 4]),
                             [0, 3])

    def test_loop_grid(self):
        grid_map = GridMap('R3', [2, 3, 4], [0, 0, 0], [1, 1, 1])
        cells = list(grid_map.loop_grid())
        self.assertEqual(len(cells), 24)
        self.assertEqual(sorted(i for i, _ in cells), list(range(24)))
        testing.assert_almost_equal(cells[0][1], [0.25, 1.0 / 6, 0.125])

        cells = list(grid_map.loop_grid(selected_dims=[0, 2],
                                        fixed_indices=[0, 2, 0]))
        self.assertEqual(len(cells), 8)
        for _, sample in cells:
            self.assertAlmostEqual(sample[1], 2.5 / 3)

    def test_loop_grid_tuple_dims(self):
        grid_map = GridMap('R3', [2, 3, 4], [0, 0, 0], [1, 1, 1])
        cells = list(grid_map.loop_grid((0, 1), [0, 0, 2]))
        self.assertEqual(len(cells), 6)
        self.assertEqual(len(set(i for i, _ in cells)), 6)
        for _, sample in cells:
            self.assertAlmostEqual(sample[2], 2.5 / 4)
        testing.assert_equal(
            sorted(i for i, _ in cells),
            sorted(i for i, _ in grid_map.loop_grid([0, 1], [0, 0, 2])))

    def test_invalid(self):
        with self.assertRaises(ConfigurationError):
            GridMap('R2', [2, 2, 2], [0, 0], [1, 1])
        with self.assertRaises(ConfigurationError):
            GridMap('R2', [0, 2], [0, 0], [1, 1])
        with self.assertRaises(ConfigurationError):
            GridMap('R2', [2, 2], [1, 0], [0, 1])
        with self.assertRaises(ConfigurationError):
            GridMap('R2', [2, 2], [0, 0], [1, 1], values=np.zeros(3))

    def test_build(self):
        classifier = make_disc_classifier()
        grid_map = GridMap.build(classifier, [20, 20], [-1, -1], [1, 1])
        self.assertEqual(len(grid_map.values), 400)
        self.assertGreater(grid_map.value_at([0.0, 0.0]), 0)
        self.assertLess(grid_map.value_at([0.9, 0.9]), 0)
        # clamped to the border cell
        self.assertEqual(grid_map.value_at([5.0, 5.0]),
                         grid_map.value_at([0.99, 0.99]))
        reachable = grid_map.reachable_cells()
        self.assertGreater(len(reachable), 0)
        self.assertLess(len(reachable), 400)
        for flat_index, sample in grid_map.loop_grid():
            self.assertAlmostEqual(grid_map.values[flat_index],
                                   classifier.evaluate(sample))

    def test_build_so3_normalizes_quaternion(self):
        classifier = ReachabilityClassifier(
            'SO3', np.eye(3).reshape(1, 9), [1.0], rho=0.5, gamma=1.0)
        grid_map = GridMap.build(classifier, [2, 2, 2, 2],
                                 [-1, -1, -1, -1], [1, 1, 1, 1])
        for _, sample in grid_map.loop_grid():
            self.assertAlmostEqual(np.linalg.norm(sample), 1.0)
        self.assertTrue(np.all(np.isfinite(grid_map.values)))

    def test_slice_points(self):
        classifier = make_disc_classifier('SE2', center=(0.0, 0.0, 1.0, 0.0))
        grid_map = GridMap.build(classifier, [10, 10, 9],
                                 [-1, -1, -np.pi], [1, 1, np.pi])
        points = grid_map.slice_points([0.0, 0.0, 0.0])
        self.assertEqual(points.shape[1], 3)
        self.assertGreater(len(points), 0)
        testing.assert_equal(points[:, 2], 0.0)
        self.assertTrue(np.all(np.abs(points[:, :2]) < 0.5))
        testing.assert_almost_equal(grid_map.grid_cube_scale(),
                                    [0.2, 0.2, 2 * np.pi / 9])

    def test_save_load(self):
        grid_map = GridMap.build(make_disc_classifier(), [5, 5],
                                 [-1, -1], [1, 1])
        filepath = osp.join(self.tmp_dir, 'grid_map.npz')
        grid_map.save(filepath)
        loaded = GridMap.load(filepath)
        self.assertEqual(loaded.space, grid_map.space)
        testing.assert_equal(loaded.divide_nums, grid_map.divide_nums)
        testing.assert_equal(loaded.values, grid_map.values)
