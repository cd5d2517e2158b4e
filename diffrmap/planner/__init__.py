# flake8: noqa

from diffrmap.planner.base import IncrementalQPPlanner
from diffrmap.planner.base import IterationResult
from diffrmap.planner.base import make_adjacent_reg_mat
from diffrmap.planner.base import QpCoefficient
from diffrmap.planner.config import FootstepConfig
from diffrmap.planner.config import LocomanipConfig
from diffrmap.planner.config import PlacementConfig
from diffrmap.planner.config import PlannerConfig
from diffrmap.planner.footstep import FootstepPlanner
from diffrmap.planner.inverse_kinematics import solve_ik
from diffrmap.planner.locomanip import Limb
from diffrmap.planner.locomanip import LocomanipPlanner
from diffrmap.planner.placement import PlacementPlanner
