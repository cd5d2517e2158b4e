import unittest

from diffrmap.exceptions import ConfigurationError
from diffrmap.planner import FootstepConfig
from diffrmap.planner import LocomanipConfig
from diffrmap.planner import PlacementConfig
from diffrmap.planner import PlannerConfig


class TestPlannerConfig(unittest.TestCase):

    def test_defaults(self):
        config = PlannerConfig()
        self.assertEqual(config.svm_thre, 0.0)
        self.assertEqual(config.delta_config_limit, 0.1)
        self.assertEqual(config.solver, 'cvxopt')
        self.assertFalse(config.use_slack)
        self.assertEqual(config.link_value_tol, 1e-2)
        self.assertEqual(config.step_halving_num, 10)

        self.assertEqual(FootstepConfig().footstep_num, 3)
        self.assertFalse(FootstepConfig().alternate_lr)
        self.assertTrue(LocomanipConfig().use_slack)
        self.assertTrue(LocomanipConfig().hand_link_constraint)
        self.assertEqual(PlacementConfig().ik_loop_num, 50)

    def test_invalid(self):
        with self.assertRaises(ConfigurationError):
            PlannerConfig(delta_config_limit=0.0)
        with self.assertRaises(ConfigurationError):
            PlannerConfig(svm_ineq_weight=-1.0)
        with self.assertRaises(ConfigurationError):
            PlannerConfig(solver='osqp')
        with self.assertRaises(ConfigurationError):
            PlannerConfig(link_value_tol=-1e-3)
        with self.assertRaises(ConfigurationError):
            FootstepConfig(step_halving_num=-1)
        with self.assertRaises(ConfigurationError):
            FootstepConfig(footstep_num=0)
        with self.assertRaises(ConfigurationError):
            PlacementConfig(reaching_num=0)
        with self.assertRaises(ConfigurationError):
            PlacementConfig(placement_weight=-1.0)
        with self.assertRaises(ConfigurationError):
            LocomanipConfig(motion_len=0)

    def test_callable_solver(self):
        config = PlannerConfig(solver=lambda P, q, G, h, A, b: q)
        self.assertTrue(callable(config.solver))

    def test_initial_sample_poses_are_not_shared(self):
        config1 = LocomanipConfig()
        config2 = LocomanipConfig()
        config1.initial_sample_poses['left_foot'] = None
        self.assertEqual(config2.initial_sample_poses, {})
