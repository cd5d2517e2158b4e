# flake8: noqa

from .base import Coordinates

from .math import matrix2quaternion
from .math import matrix_log
from .math import quaternion2matrix
from .math import rotation_matrix_z
from .math import rpy_matrix
from .math import sr_inverse
from .math import wrap_angle
from .math import yaw_angle
