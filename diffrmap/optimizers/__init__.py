"""Wrappers of third party QP solvers.

Each wrapper exposes ``solve_qp(P, q, G, h, A=None, b=None, sym_proj=False)``
and raises :class:`diffrmap.exceptions.SolverFailure` when no optimum is
found. Use :func:`diffrmap.optimizer.solve_qp` to select a solver by name.
"""
