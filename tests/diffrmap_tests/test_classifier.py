import os.path as osp
import shutil
import tempfile
import unittest

import numpy as np
from numpy import testing
from sklearn.svm import SVC

from diffrmap.classifier import ReachabilityClassifier
from diffrmap.exceptions import ConfigurationError
from diffrmap.exceptions import TrainingDataError
from diffrmap.sample_set import SampleSet
from diffrmap.sampling_space import get_sampling_space
from diffrmap.sampling_space import SamplingSpace


def make_blob_sample_set(rng, n=100):
    reachable = rng.normal([0.0, 0.0], 0.1, (n, 2))
    unreachable = rng.normal([1.0, 1.0], 0.1, (n, 2))
    return SampleSet('R2', np.vstack([reachable, unreachable]),
                     np.hstack([np.ones(n, dtype=bool),
                                np.zeros(n, dtype=bool)]))


def make_random_classifier(space, rng, n_support_vectors=10):
    ops = get_sampling_space(space)
    support_vectors = np.array([
        ops.sample_to_input(ops.pose_to_sample(ops.get_random_pose(rng)))
        for _ in range(n_support_vectors)])
    dual_coef = rng.uniform(-1.0, 1.0, n_support_vectors)
    return ReachabilityClassifier(space, support_vectors, dual_coef,
                                  rho=0.1, gamma=2.0)


class TestReachabilityClassifier(unittest.TestCase):

    @classmethod
    def setup_class(cls):
        cls.rng = np.random.default_rng(0)
        cls.sample_set = make_blob_sample_set(cls.rng)
        cls.classifier = ReachabilityClassifier.train(
            cls.sample_set, gamma=5.0, C=10.0)

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_train_sign(self):
        self.assertGreater(self.classifier.evaluate(np.array([0.0, 0.0])), 0)
        self.assertLess(self.classifier.evaluate(np.array([1.0, 1.0])), 0)
        self.assertTrue(self.classifier.is_reachable(np.array([0.0, 0.0])))
        self.assertFalse(self.classifier.is_reachable(np.array([1.0, 1.0])))
        self.assertGreater(self.classifier.n_support_vectors, 0)

    def test_match_decision_function(self):
        model = SVC(kernel='rbf', gamma=5.0, C=10.0)
        inputs = self.sample_set.inputs()
        model.fit(inputs, self.sample_set.reachability.astype(np.int64))
        classifier = ReachabilityClassifier.from_model('R2', model)
        queries = self.rng.uniform(-0.5, 1.5, (20, 2))
        testing.assert_almost_equal(
            classifier.evaluate_batch(queries),
            model.decision_function(queries))
        testing.assert_almost_equal(
            [classifier.evaluate(q) for q in queries],
            model.decision_function(queries))

    def test_gamma_scale(self):
        classifier = ReachabilityClassifier.train(self.sample_set)
        inputs = self.sample_set.inputs()
        self.assertAlmostEqual(classifier.gamma,
                               1.0 / (inputs.shape[1] * inputs.var()))
        with self.assertRaises(ConfigurationError):
            ReachabilityClassifier.train(self.sample_set, gamma=-1.0)

    def test_train_invalid_sample_set(self):
        with self.assertRaises(TrainingDataError):
            ReachabilityClassifier.train(
                SampleSet('R2', np.zeros((0, 2)), []))
        with self.assertRaises(TrainingDataError):
            ReachabilityClassifier.train(
                SampleSet('R2', np.zeros((5, 2)), [True] * 5))

    def test_invalid_support_vectors(self):
        with self.assertRaises(ConfigurationError):
            ReachabilityClassifier('SE2', np.zeros((3, 3)), np.zeros(3),
                                   0.0, 1.0)
        with self.assertRaises(ConfigurationError):
            ReachabilityClassifier('R2', np.zeros((3, 2)), np.zeros(2),
                                   0.0, 1.0)

    def test_gradient(self):
        eps = 1e-6
        rng = np.random.default_rng(1)
        for space in SamplingSpace:
            classifier = make_random_classifier(space, rng)
            ops = classifier.ops
            for _ in range(3):
                sample = ops.pose_to_sample(ops.get_random_pose(rng))
                value, grad = classifier.value_and_gradient(sample)
                self.assertAlmostEqual(value, classifier.evaluate(sample))
                self.assertEqual(grad.shape, (ops.vel_dim,))
                grad_numerical = np.zeros(ops.vel_dim)
                for k in range(ops.vel_dim):
                    vel = np.zeros(ops.vel_dim)
                    vel[k] = eps
                    grad_numerical[k] = (
                        classifier.evaluate(
                            ops.integrate_vel_to_sample(sample, vel))
                        - classifier.evaluate(
                            ops.integrate_vel_to_sample(sample, -vel))
                    ) / (2 * eps)
                testing.assert_almost_equal(
                    classifier.gradient(sample), grad_numerical, decimal=5)

    def test_evaluate_batch(self):
        rng = np.random.default_rng(2)
        classifier = make_random_classifier('SE3', rng)
        samples = np.array([
            classifier.ops.pose_to_sample(classifier.ops.get_random_pose(rng))
            for _ in range(5)])
        testing.assert_almost_equal(
            classifier.evaluate_batch(samples),
            [classifier.evaluate(s) for s in samples])
        self.assertEqual(classifier.evaluate_batch(np.zeros((0, 7))).shape,
                         (0,))

    def test_evaluate_batch_shape_mismatch(self):
        with self.assertRaises(ConfigurationError):
            self.classifier.evaluate_batch(np.zeros((3, 4)))
        with self.assertRaises(ConfigurationError):
            self.classifier.evaluate_batch(np.zeros(6))

    def test_from_model_scale_gamma(self):
        model = SVC(kernel='rbf', gamma='scale', C=10.0)
        inputs = self.sample_set.inputs()
        model.fit(inputs, self.sample_set.reachability.astype(np.int64))
        classifier = ReachabilityClassifier.from_model('R2', model)
        self.assertAlmostEqual(classifier.gamma,
                               1.0 / (inputs.shape[1] * inputs.var()))
        queries = self.rng.uniform(-0.5, 1.5, (10, 2))
        testing.assert_almost_equal(
            classifier.evaluate_batch(queries),
            model.decision_function(queries))

    def test_save_load(self):
        filepath = osp.join(self.tmp_dir, 'svm.npz')
        self.classifier.save(filepath)
        loaded = ReachabilityClassifier.load(filepath, sampling_space='R2')
        self.assertEqual(loaded.space, SamplingSpace.R2)
        self.assertAlmostEqual(loaded.gamma, self.classifier.gamma)
        sample = np.array([0.3, 0.2])
        self.assertAlmostEqual(loaded.evaluate(sample),
                               self.classifier.evaluate(sample))
        with self.assertRaises(ConfigurationError):
            ReachabilityClassifier.load(filepath, sampling_space='SE2')
