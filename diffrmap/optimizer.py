#!/usr/bin/env python
# -*- coding: utf-8 -*-

import numpy as np

from diffrmap.exceptions import ConfigurationError
from diffrmap.exceptions import SolverFailure


SOLVERS = ('cvxopt', 'quadprog')


def _box_to_inequality(n, lb, ub):
    rows = []
    vals = []
    if ub is not None:
        ub = np.broadcast_to(np.asarray(ub, dtype=np.float64), (n,))
        mask = np.isfinite(ub)
        rows.append(np.eye(n)[mask])
        vals.append(ub[mask])
    if lb is not None:
        lb = np.broadcast_to(np.asarray(lb, dtype=np.float64), (n,))
        mask = np.isfinite(lb)
        rows.append(-np.eye(n)[mask])
        vals.append(-lb[mask])
    return rows, vals


def solve_qp(P, q, G=None, h=None, A=None, b=None,
             lb=None, ub=None, solver='cvxopt', sym_proj=False):
    """Solve a Quadratic Program defined as:

    .. math::
        \\begin{eqnarray}
        \\mathrm{minimize} & & (1/2) x^T P x + q^T x \\\\
        \\mathrm{subject\\ to} & & G x \\leq h \\\\
            & & A x = b \\\\
            & & lb \\leq x \\leq ub
        \\end{eqnarray}

    Parameters
    ----------
    P : array, shape=(n, n)
        Primal quadratic cost matrix.
    q : array, shape=(n,)
        Primal quadratic cost vector.
    G : array, shape=(m, n), optional
        Linear inequality constraint matrix.
    h : array, shape=(m,), optional
        Linear inequality constraint vector.
    A : array, shape=(meq, n), optional
        Linear equality constraint matrix.
    b : array, shape=(meq,), optional
        Linear equality constraint vector.
    lb : float or array, shape=(n,), optional
        Lower bound of x. Infinite entries are ignored.
    ub : float or array, shape=(n,), optional
        Upper bound of x. Infinite entries are ignored.
    solver : string or callable, optional
        Name of the QP solver to use, 'cvxopt' or 'quadprog'.
        A callable with the signature ``solver(P, q, G, h, A, b)`` is
        called as is.
    sym_proj : bool, optional
        Set to `True` when the `P` matrix provided is not symmetric.

    Returns
    -------
    x : array, shape=(n,)
        Optimal solution to the QP.

    Raises
    ------
    diffrmap.exceptions.SolverFailure
        If the QP is infeasible or the solver fails.
    diffrmap.exceptions.ConfigurationError
        If the solver is not supported.
    """
    P = np.asarray(P, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    n = P.shape[1]
    rows, vals = _box_to_inequality(n, lb, ub)
    if G is not None and len(G) > 0:
        rows.insert(0, np.asarray(G, dtype=np.float64).reshape(-1, n))
        vals.insert(0, np.asarray(h, dtype=np.float64).reshape(-1))
    if len(rows) > 0:
        G = np.vstack(rows)
        h = np.hstack(vals)
    else:
        # solvers require at least one inequality row, 0 <= 1 is inactive
        G = np.zeros((1, n))
        h = np.ones(1)

    if callable(solver):
        x = solver(P, q, G, h, A, b)
    elif solver == 'cvxopt':
        from diffrmap.optimizers.cvxopt_solver import solve_qp as _solve
        x = _solve(P, q, G, h, A, b, sym_proj=sym_proj)
    elif solver == 'quadprog':
        from diffrmap.optimizers.quadprog_solver import solve_qp as _solve
        x = _solve(P, q, G, h, A, b, sym_proj=sym_proj)
    else:
        raise ConfigurationError('QP solver {} not supported'.format(solver))

    if x is None:
        raise SolverFailure('QP solver returned no solution')
    x = np.asarray(x, dtype=np.float64)
    if x.size != n:
        raise SolverFailure(
            'QP solution has {} elements, expected {}'.format(x.size, n))
    x = x.reshape(n)
    if not np.all(np.isfinite(x)):
        raise SolverFailure('QP solution is not finite')
    return x
