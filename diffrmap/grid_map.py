"""Dense grid of classifier values for visualization and lookup."""

import itertools
from logging import getLogger

import numpy as np

from diffrmap.exceptions import ConfigurationError
from diffrmap.sampling_space import get_sampling_space


logger = getLogger(__name__)


def ratios_to_indices(ratios, divide_nums):
    """Convert ratios in [0, 1] to grid indices.

    Ratios outside [0, 1] are clamped to the border cells. A NaN ratio,
    which arises from a zero width dimension, maps to index 0.

    Parameters
    ----------
    ratios : array-like
        ratios of shape (D,).
    divide_nums : array-like
        number of cells of each dimension, shape (D,).

    Returns
    -------
    indices : numpy.ndarray
        integer indices of shape (D,).

    Examples
    --------
    >>> ratios_to_indices([0.0, 0.5, 1.0, 1.5], [10, 10, 10, 10])
    array([0, 5, 9, 9])
    """
    ratios = np.nan_to_num(np.asarray(ratios, dtype=np.float64),
                           nan=0.0, posinf=1.0, neginf=0.0)
    divide_nums = np.asarray(divide_nums, dtype=np.int64)
    indices = np.floor(ratios * divide_nums).astype(np.int64)
    return np.clip(indices, 0, divide_nums - 1)


class GridMap(object):
    """Classifier values on the cell centers of a regular grid.

    Parameters
    ----------
    sampling_space : SamplingSpace or str or int
    divide_nums : array-like
        number of cells along each sample dimension.
    sample_min : array-like
        lower bound of the grid.
    sample_max : array-like
        upper bound of the grid.
    values : numpy.ndarray, optional
        flat array of cell values in C order. Zero if omitted.
    """

    def __init__(self, sampling_space, divide_nums, sample_min, sample_max,
                 values=None):
        self.ops = get_sampling_space(sampling_space)
        dim = self.ops.sample_dim
        self.divide_nums = np.asarray(divide_nums, dtype=np.int64)
        self.sample_min = np.asarray(sample_min, dtype=np.float64)
        self.sample_max = np.asarray(sample_max, dtype=np.float64)
        for name, array in (('divide_nums', self.divide_nums),
                            ('sample_min', self.sample_min),
                            ('sample_max', self.sample_max)):
            if array.shape != (dim,):
                raise ConfigurationError(
                    '{} of {} must have shape ({},), got {}'.format(
                        name, self.ops.space, dim, array.shape))
        if np.any(self.divide_nums < 1):
            raise ConfigurationError('divide_nums must be positive')
        if np.any(self.sample_min > self.sample_max):
            raise ConfigurationError('sample_min must not exceed sample_max')
        if values is None:
            values = np.zeros(self.n_cells)
        self.values = np.asarray(values, dtype=np.float64).reshape(-1)
        if len(self.values) != self.n_cells:
            raise ConfigurationError(
                'Grid has {} cells but {} values are given'.format(
                    self.n_cells, len(self.values)))

    @property
    def space(self):
        return self.ops.space

    @property
    def n_cells(self):
        return int(np.prod(self.divide_nums))

    @classmethod
    def build(cls, classifier, divide_nums, sample_min, sample_max):
        """Evaluate a classifier on every cell center.

        Parameters
        ----------
        classifier : diffrmap.classifier.ReachabilityClassifier
        divide_nums : array-like
        sample_min : array-like
        sample_max : array-like

        Returns
        -------
        grid_map : GridMap
        """
        grid_map = cls(classifier.ops, divide_nums, sample_min, sample_max)
        samples = np.array([sample for _, sample in grid_map.loop_grid()])
        grid_map.values = classifier.evaluate_batch(samples)
        logger.info('Built grid map of %d cells, %d reachable',
                    grid_map.n_cells, len(grid_map.reachable_cells()))
        return grid_map

    def cell_sample(self, indices):
        """Return the sample at the center of a cell.

        Quaternion components are normalized.
        """
        indices = np.asarray(indices, dtype=np.float64)
        center = self.sample_min + (indices + 0.5) \
            * (self.sample_max - self.sample_min) / self.divide_nums
        return self.ops.pose_to_sample(self.ops.sample_to_pose(center))

    def sample_to_indices(self, sample):
        sample = np.asarray(sample, dtype=np.float64)
        with np.errstate(divide='ignore', invalid='ignore'):
            ratios = (sample - self.sample_min) \
                / (self.sample_max - self.sample_min)
        return ratios_to_indices(ratios, self.divide_nums)

    def loop_grid(self, selected_dims=None, fixed_indices=None):
        """Iterate over cells.

        Parameters
        ----------
        selected_dims : list[int] or tuple[int], optional
            dimensions to iterate. All dimensions if omitted.
        fixed_indices : array-like, optional
            indices of the dimensions that are not iterated. Zero if
            omitted.

        Yields
        ------
        flat_index : int
            index of the cell in ``values``.
        sample : numpy.ndarray
            sample at the center of the cell.
        """
        dim = self.ops.sample_dim
        if selected_dims is None:
            selected_dims = range(dim)
        selected_dims = list(selected_dims)
        if fixed_indices is None:
            fixed_indices = np.zeros(dim, dtype=np.int64)
        indices = np.array(fixed_indices, dtype=np.int64)
        for combination in itertools.product(
                *[range(self.divide_nums[d]) for d in selected_dims]):
            indices[selected_dims] = combination
            flat_index = int(np.ravel_multi_index(indices, self.divide_nums))
            yield flat_index, self.cell_sample(indices)

    def value_at(self, sample):
        """Return the value of the cell containing a sample."""
        indices = self.sample_to_indices(sample)
        return float(self.values[np.ravel_multi_index(indices,
                                                      self.divide_nums)])

    def reachable_cells(self, thre=0.0):
        """Return flat indices of cells whose value exceeds ``thre``."""
        return np.flatnonzero(self.values > thre)

    def grid_cube_scale(self):
        """Return the size of a cell along the cloud x, y and z axes."""
        scale = (self.sample_max - self.sample_min) / self.divide_nums
        cube = np.zeros(3)
        cube[:min(3, len(scale))] = scale[:3]
        return cube

    def slice_points(self, slice_sample, selected_dims=(0, 1), thre=0.0):
        """Return cloud points of reachable cells on a slice.

        Parameters
        ----------
        slice_sample : array-like
            sample selecting the cells of the dimensions that are not
            iterated.
        selected_dims : tuple[int]
            dimensions spanning the slice.
        thre : float
            value above which a cell is reachable.

        Returns
        -------
        points : numpy.ndarray
            array of shape (K, 3).
        """
        fixed_indices = self.sample_to_indices(slice_sample)
        points = [self.ops.sample_to_cloud_pos(sample)
                  for flat_index, sample in self.loop_grid(
                      selected_dims, fixed_indices)
                  if self.values[flat_index] > thre]
        return np.array(points).reshape(-1, 3)

    def save(self, filepath: str):
        """Save grid map to file (.npz)."""
        np.savez_compressed(
            filepath,
            sampling_space=int(self.space),
            divide_nums=self.divide_nums,
            sample_min=self.sample_min,
            sample_max=self.sample_max,
            values=self.values)

    @classmethod
    def load(cls, filepath: str):
        """Load grid map from file (.npz)."""
        data = np.load(filepath)
        return cls(int(data['sampling_space']), data['divide_nums'],
                   data['sample_min'], data['sample_max'],
                   values=data['values'])
