import unittest

import numpy as np
from numpy import testing

from diffrmap.exceptions import ConfigurationError
from diffrmap.exceptions import SolverFailure
from diffrmap.optimizer import solve_qp
from diffrmap.optimizer import SOLVERS


class TestSolveQP(unittest.TestCase):

    def test_unconstrained(self):
        P = np.diag([2.0, 4.0])
        q = np.array([-2.0, -4.0])
        for solver in SOLVERS:
            x = solve_qp(P, q, solver=solver)
            testing.assert_almost_equal(x, [1.0, 1.0], decimal=5)

    def test_inequality(self):
        # minimize (x - 1)^2 + (y - 1)^2 s.t. x + y <= 1
        P = 2 * np.eye(2)
        q = np.array([-2.0, -2.0])
        G = np.array([[1.0, 1.0]])
        h = np.array([1.0])
        for solver in SOLVERS:
            x = solve_qp(P, q, G, h, solver=solver)
            testing.assert_almost_equal(x, [0.5, 0.5], decimal=5)

    def test_box_bounds(self):
        P = np.eye(3)
        q = np.array([-1.0, 1.0, -0.05])
        for solver in SOLVERS:
            x = solve_qp(P, q, lb=-0.1, ub=0.1, solver=solver)
            testing.assert_almost_equal(x, [0.1, -0.1, 0.05], decimal=5)

    def test_infinite_bounds_are_ignored(self):
        P = np.eye(2)
        q = np.array([-1.0, -5.0])
        for solver in SOLVERS:
            x = solve_qp(P, q, lb=[-0.1, -np.inf], ub=[0.1, np.inf],
                         solver=solver)
            testing.assert_almost_equal(x, [0.1, 5.0], decimal=5)

    def test_equality(self):
        P = np.eye(2)
        q = np.zeros(2)
        A = np.array([[1.0, 1.0]])
        b = np.array([2.0])
        for solver in SOLVERS:
            x = solve_qp(P, q, A=A, b=b, solver=solver)
            testing.assert_almost_equal(x, [1.0, 1.0], decimal=5)

    def test_infeasible(self):
        P = np.eye(2)
        q = np.zeros(2)
        G = np.array([[1.0, 0.0]])
        h = np.array([-1.0])
        for solver in SOLVERS:
            with self.assertRaises(SolverFailure):
                solve_qp(P, q, G, h, lb=0.0, ub=1.0, solver=solver)

    def test_unknown_solver(self):
        with self.assertRaises(ConfigurationError):
            solve_qp(np.eye(2), np.zeros(2), solver='osqp')

    def test_callable_solver(self):
        calls = []

        def solver(P, q, G, h, A, b):
            calls.append(G.shape)
            return np.full(len(q), 0.5)

        x = solve_qp(np.eye(2), np.zeros(2), lb=-1.0, ub=1.0, solver=solver)
        testing.assert_equal(x, [0.5, 0.5])
        self.assertEqual(calls, [(4, 2)])

        def diverging_solver(P, q, G, h, A, b):
            return np.array([np.nan, 0.0])

        with self.assertRaises(SolverFailure):
            solve_qp(np.eye(2), np.zeros(2), solver=diverging_solver)

        with self.assertRaises(SolverFailure):
            solve_qp(np.eye(2), np.zeros(2), solver=lambda *args: None)
        with self.assertRaises(SolverFailure):
            solve_qp(np.eye(2), np.zeros(2),
                     solver=lambda *args: np.zeros(3))
