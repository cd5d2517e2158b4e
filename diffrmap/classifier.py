"""Differentiable reachability classifier.

The classifier is a support vector machine with a radial basis function
kernel trained by scikit-learn. After training only the support vectors,
their dual coefficients, the offset ``rho`` and the kernel width
``gamma`` are kept, so that the decision function and its gradient can
be evaluated in closed form:

.. math::
    f(x) = \\sum_i \\alpha_i \\exp(-\\gamma \\|x - s_i\\|^2) - \\rho

A positive value means reachable.
"""

from logging import getLogger

import numpy as np
from sklearn.svm import SVC

from diffrmap.exceptions import ConfigurationError
from diffrmap.exceptions import TrainingDataError
from diffrmap.sampling_space import get_sampling_space


logger = getLogger(__name__)


def _fitted_gamma(model):
    """Return the numeric RBF width of a fitted ``sklearn.svm.SVC``.

    ``'scale'`` and ``'auto'`` are resolved by scikit-learn at fit time
    and only stored in the private ``_gamma`` attribute.
    """
    if isinstance(model.gamma, str):
        return model._gamma
    return model.gamma


class ReachabilityClassifier(object):
    """Closed form RBF support vector classifier on a sampling space.

    Parameters
    ----------
    sampling_space : SamplingSpace or str or int
        space of the evaluated samples.
    support_vectors : numpy.ndarray
        support vectors in input space of shape (M, input_dim).
    dual_coef : numpy.ndarray
        signed dual coefficients of shape (M,).
    rho : float
        offset subtracted from the kernel expansion.
    gamma : float
        RBF kernel width.
    """

    def __init__(self, sampling_space, support_vectors, dual_coef, rho,
                 gamma):
        self.ops = get_sampling_space(sampling_space)
        self.support_vectors = np.asarray(support_vectors, dtype=np.float64)
        self.dual_coef = np.asarray(dual_coef, dtype=np.float64).reshape(-1)
        self.rho = float(rho)
        self.gamma = float(gamma)
        if self.gamma <= 0:
            raise ConfigurationError(
                'gamma must be positive, got {}'.format(self.gamma))
        if self.support_vectors.ndim != 2 \
           or self.support_vectors.shape[1] != self.ops.input_dim:
            raise ConfigurationError(
                'Support vectors of {} must have shape (M, {}), got {}'
                .format(self.ops.space, self.ops.input_dim,
                        self.support_vectors.shape))
        if len(self.dual_coef) != len(self.support_vectors):
            raise ConfigurationError(
                'Number of dual coefficients does not match number of '
                'support vectors')

    def __repr__(self):
        return '{}(space={}, support_vectors={}, gamma={:.4g})'.format(
            self.__class__.__name__, self.space, self.n_support_vectors,
            self.gamma)

    @property
    def space(self):
        return self.ops.space

    @property
    def n_support_vectors(self):
        return len(self.support_vectors)

    @classmethod
    def from_model(cls, sampling_space, model):
        """Build a classifier from a fitted ``sklearn.svm.SVC``.

        The model must use the ``rbf`` kernel, be fitted on classifier
        inputs of ``sampling_space`` and have the reachable class as
        its second class.
        """
        if model.kernel != 'rbf':
            raise ConfigurationError(
                'Only the rbf kernel is supported, got {}'.format(
                    model.kernel))
        if len(model.classes_) != 2:
            raise TrainingDataError(
                'Binary classifier is required, got classes {}'.format(
                    model.classes_))
        return cls(sampling_space,
                   model.support_vectors_,
                   model.dual_coef_[0],
                   -model.intercept_[0],
                   _fitted_gamma(model))

    @classmethod
    def train(cls, sample_set, gamma='scale', C=10.0, **svc_kwargs):
        """Train a classifier from a labeled sample set.

        Parameters
        ----------
        sample_set : diffrmap.sample_set.SampleSet
            training samples with both labels.
        gamma : float or {'scale', 'auto'}
            RBF kernel width.
        C : float
            regularization parameter of the soft margin.
        **svc_kwargs
            passed to ``sklearn.svm.SVC``.

        Raises
        ------
        diffrmap.exceptions.TrainingDataError
            If the sample set is empty or has a single label.
        """
        sample_set.check_trainable()
        inputs = sample_set.inputs()
        labels = sample_set.reachability.astype(np.int64)
        if not isinstance(gamma, str) and gamma <= 0:
            raise ConfigurationError(
                'gamma must be positive, got {}'.format(gamma))

        logger.info('Training SVM on %d samples (%d reachable) in %s, '
                    'gamma=%s C=%.4g', len(sample_set),
                    sample_set.n_reachable, sample_set.space, gamma, C)
        model = SVC(kernel='rbf', gamma=gamma, C=C, **svc_kwargs)
        model.fit(inputs, labels)
        classifier = cls.from_model(sample_set.ops, model)
        logger.info('Trained SVM with %d support vectors, gamma=%.4g',
                    classifier.n_support_vectors, classifier.gamma)
        return classifier

    def _kernel(self, x):
        diff = self.support_vectors - x
        return diff, np.exp(-self.gamma * np.sum(diff ** 2, axis=1))

    def evaluate(self, sample):
        """Return the decision value of a sample.

        Parameters
        ----------
        sample : numpy.ndarray
            sample of shape (sample_dim,).

        Returns
        -------
        value : float
            positive if reachable.
        """
        _, k = self._kernel(self.ops.sample_to_input(sample))
        return float(self.dual_coef.dot(k) - self.rho)

    def evaluate_batch(self, samples):
        """Return the decision values of samples of shape (N, sample_dim)."""
        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim != 2 or samples.shape[1] != self.ops.sample_dim:
            raise ConfigurationError(
                '{} samples must have shape (N, {}), got {}'.format(
                    self.space, self.ops.sample_dim, samples.shape))
        if len(samples) == 0:
            return np.zeros(0)
        inputs = np.array([self.ops.sample_to_input(s) for s in samples])
        sq_dist = (np.sum(inputs ** 2, axis=1)[:, None]
                   + np.sum(self.support_vectors ** 2, axis=1)[None, :]
                   - 2.0 * inputs.dot(self.support_vectors.T))
        k = np.exp(-self.gamma * np.maximum(sq_dist, 0.0))
        return k.dot(self.dual_coef) - self.rho

    def is_reachable(self, sample, thre=0.0):
        return self.evaluate(sample) > thre

    def gradient(self, sample):
        """Return the gradient of the decision value w.r.t. the velocity.

        Returns
        -------
        grad : numpy.ndarray
            vector of shape (vel_dim,) such that
            ``evaluate(integrate_vel_to_sample(sample, v))`` is
            approximately ``evaluate(sample) + grad.dot(v)``.
        """
        return self.value_and_gradient(sample)[1]

    def value_and_gradient(self, sample):
        """Return the decision value and its velocity gradient at once."""
        diff, k = self._kernel(self.ops.sample_to_input(sample))
        weighted = self.dual_coef * k
        value = float(np.sum(weighted) - self.rho)
        grad_input = 2.0 * self.gamma * weighted.dot(diff)
        return value, self.ops.input_vel_jacobian(sample).T.dot(grad_input)

    def save(self, filepath: str):
        """Save classifier to file.

        Parameters
        ----------
        filepath : str
            Path to save file (.npz).
        """
        np.savez_compressed(
            filepath,
            sampling_space=int(self.space),
            support_vectors=self.support_vectors,
            dual_coef=self.dual_coef,
            rho=self.rho,
            gamma=self.gamma)
        logger.info('Saved SVM with %d support vectors to %s',
                    self.n_support_vectors, filepath)

    @classmethod
    def load(cls, filepath: str, sampling_space=None):
        """Load classifier from file.

        Parameters
        ----------
        filepath : str
            Path to load file (.npz).
        sampling_space : SamplingSpace or str or int, optional
            expected space. A mismatch raises
            :class:`diffrmap.exceptions.ConfigurationError`.
        """
        data = np.load(filepath)
        stored = get_sampling_space(int(data['sampling_space']))
        if sampling_space is not None \
           and get_sampling_space(sampling_space) is not stored:
            raise ConfigurationError(
                'Classifier {} is in {} but {} is expected'.format(
                    filepath, stored.space,
                    get_sampling_space(sampling_space).space))
        return cls(stored, data['support_vectors'], data['dual_coef'],
                   float(data['rho']), float(data['gamma']))
