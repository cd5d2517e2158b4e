import cvxopt
from cvxopt import matrix as cvxmat
from cvxopt.solvers import qp
import numpy as np

from diffrmap.exceptions import SolverFailure


cvxopt.solvers.options['show_progress'] = False  # disable cvxopt output


def _to_cvxmat(array):
    return cvxmat(np.ascontiguousarray(array, dtype=np.float64))


def solve_qp(P, q, G, h, A=None, b=None, sym_proj=False):
    """Solve a Quadratic Program with cvxopt's interior point solver.

    .. math::
        \\begin{eqnarray}
        \\mathrm{minimize} & & (1/2) x^T P x + q^T x \\\\
        \\mathrm{subject\\ to} & & G x \\leq h \\\\
            & & A x = b
        \\end{eqnarray}

    Raises
    ------
    diffrmap.exceptions.SolverFailure
        If the optimum is not found.
    """
    if sym_proj:
        P = .5 * (P + P.T)
    args = [_to_cvxmat(P), _to_cvxmat(q), _to_cvxmat(G), _to_cvxmat(h)]
    if A is not None:
        args.extend([_to_cvxmat(A), _to_cvxmat(b)])
    try:
        sol = qp(*args)
    except (ValueError, ArithmeticError) as e:
        raise SolverFailure('cvxopt failed: {}'.format(e)) from e
    if 'optimal' not in sol['status']:
        raise SolverFailure('QP optimum not found: %s' % sol['status'])
    return np.array(sol['x']).reshape((P.shape[1],))
