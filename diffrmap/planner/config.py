from dataclasses import dataclass
from dataclasses import field
from typing import Dict
from typing import Optional
from typing import Union

from diffrmap.coordinates import Coordinates
from diffrmap.exceptions import ConfigurationError
from diffrmap.optimizer import SOLVERS


@dataclass
class PlannerConfig:
    """Parameters shared by the incremental QP planners.

    Attributes
    ----------
    svm_thre : float
        decision value a relative sample must keep to be reachable.
    delta_config_limit : float
        bound of each velocity component per iteration.
    adjacent_reg_weight : float
        weight of the term pulling adjacent chain entries together.
    reg_weight : float
        damping added to the configuration diagonal.
    svm_ineq_weight : float
        penalty of the slack variables.
    link_value_tol : float
        a link at or above ``svm_thre - link_value_tol`` must stay there
        after the step.
    step_halving_num : int
        maximum number of times the step is halved to keep reachable
        links reachable. The step is rejected after that.
    use_slack : bool
        relax every reachability row with a penalized slack variable.
    solver : str or callable
        QP solver name passed to :func:`diffrmap.optimizer.solve_qp`.
    """

    svm_thre: float = 0.0
    delta_config_limit: float = 0.1
    adjacent_reg_weight: float = 1e-3
    reg_weight: float = 1e-3
    svm_ineq_weight: float = 1e6
    link_value_tol: float = 1e-2
    step_halving_num: int = 10
    use_slack: bool = False
    solver: Union[str, object] = 'cvxopt'

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.delta_config_limit <= 0:
            raise ConfigurationError(
                'delta_config_limit must be positive, got {}'.format(
                    self.delta_config_limit))
        for name in ('adjacent_reg_weight', 'reg_weight', 'svm_ineq_weight',
                     'link_value_tol', 'step_halving_num'):
            if getattr(self, name) < 0:
                raise ConfigurationError(
                    '{} must not be negative, got {}'.format(
                        name, getattr(self, name)))
        if not callable(self.solver) and self.solver not in SOLVERS:
            raise ConfigurationError(
                'QP solver {} not supported, choose one of {}'.format(
                    self.solver, SOLVERS))


@dataclass
class FootstepConfig(PlannerConfig):
    """Parameters of :class:`diffrmap.planner.FootstepPlanner`.

    Attributes
    ----------
    footstep_num : int
        number of footsteps in the chain.
    alternate_lr : bool
        alternate left and right feet. Odd footsteps are evaluated with
        the mirrored relative sample. Only valid in SE2.
    initial_sample_pose : Coordinates, optional
        relative pose used to lay out the initial chain. Identity if
        omitted.
    """

    footstep_num: int = 3
    alternate_lr: bool = False
    initial_sample_pose: Optional[Coordinates] = None

    def validate(self):
        super(FootstepConfig, self).validate()
        if self.footstep_num < 1:
            raise ConfigurationError(
                'footstep_num must be positive, got {}'.format(
                    self.footstep_num))


@dataclass
class PlacementConfig(PlannerConfig):
    """Parameters of :class:`diffrmap.planner.PlacementPlanner`.

    Attributes
    ----------
    reaching_num : int
        number of reaching targets.
    placement_weight : float
        weight of the term pulling the placement to its target.
    ik_trial_num : int
        number of IK trials per reaching target.
    ik_loop_num : int
        number of IK iterations per trial.
    ik_error_thre : float
        norm of the IK error below which a trial succeeds.
    initial_placement_pose : Coordinates, optional
        initial placement. Identity if omitted.
    """

    reg_weight: float = 1e-6
    use_slack: bool = True
    reaching_num: int = 2
    placement_weight: float = 1e-3
    ik_trial_num: int = 10
    ik_loop_num: int = 50
    ik_error_thre: float = 1e-2
    initial_placement_pose: Optional[Coordinates] = None

    def validate(self):
        super(PlacementConfig, self).validate()
        for name in ('reaching_num', 'ik_trial_num', 'ik_loop_num'):
            if getattr(self, name) < 1:
                raise ConfigurationError(
                    '{} must be positive, got {}'.format(
                        name, getattr(self, name)))
        if self.placement_weight < 0:
            raise ConfigurationError(
                'placement_weight must not be negative, got {}'.format(
                    self.placement_weight))


@dataclass
class LocomanipConfig(PlannerConfig):
    """Parameters of :class:`diffrmap.planner.LocomanipPlanner`.

    Attributes
    ----------
    motion_len : int
        number of entries of the foot chain and of the hand chain.
    alternate_lr : bool
        mirror odd foot links and evaluate them with the left foot
        classifier. Only valid in SE2.
    initial_sample_poses : dict
        start poses keyed by :class:`diffrmap.planner.Limb`. Missing
        limbs start at the identity.
    hand_link_constraint : bool
        constrain consecutive hand entries with the hand classifier.
    """

    use_slack: bool = True
    motion_len: int = 4
    alternate_lr: bool = False
    initial_sample_poses: Dict[object, Coordinates] = field(
        default_factory=dict)
    hand_link_constraint: bool = True

    def validate(self):
        super(LocomanipConfig, self).validate()
        if self.motion_len < 1:
            raise ConfigurationError(
                'motion_len must be positive, got {}'.format(
                    self.motion_len))
