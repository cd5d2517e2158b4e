import numpy as np
from quadprog import solve_qp as _solve_qp

from diffrmap.exceptions import SolverFailure


def solve_qp(P, q, G, h, A=None, b=None, sym_proj=False):
    """Solve a Quadratic Program defined as:

    .. math::
        \\begin{eqnarray}
        \\mathrm{minimize} & & (1/2) x^T P x + q^T x \\\\
        \\mathrm{subject\\ to} & & G x \\leq h \\\\
            & & A x = b
        \\end{eqnarray}

    using the `quadprog <https://pypi.python.org/pypi/quadprog/>`_ QP
    solver, which implements the Goldfarb-Idnani dual algorithm.

    Parameters
    ----------
    P : array, shape=(n, n)
        Symmetric positive definite quadratic-cost matrix.
    q : array, shape=(n,)
        Quadratic-cost vector.
    G : array, shape=(m, n)
        Linear inequality matrix.
    h : array, shape=(m,)
        Linear inequality vector.
    A : array, shape=(meq, n), optional
        Linear equality matrix.
    b : array, shape=(meq,), optional
        Linear equality vector.
    sym_proj : bool, optional
        Set to `True` when the `P` matrix provided is not symmetric.

    Returns
    -------
    x : array, shape=(n,)
        Optimal solution to the QP.

    Raises
    ------
    diffrmap.exceptions.SolverFailure
        If the QP is infeasible or `P` is not positive definite.
    """
    if sym_proj:
        qp_G = .5 * (P + P.T)
    else:
        qp_G = P
    qp_G = np.ascontiguousarray(qp_G, dtype=np.float64)
    qp_a = -np.asarray(q, dtype=np.float64)
    if A is not None:
        qp_C = - np.vstack([A, G]).T
        qp_b = - np.hstack([b, h])
        meq = A.shape[0]
    else:  # no equality constraint
        qp_C = - G.T
        qp_b = - h
        meq = 0
    try:
        return _solve_qp(qp_G, qp_a,
                         np.ascontiguousarray(qp_C, dtype=np.float64),
                         np.ascontiguousarray(qp_b, dtype=np.float64),
                         meq)[0]
    except ValueError as e:
        raise SolverFailure('quadprog failed: {}'.format(e)) from e
