#!/usr/bin/env python
"""Footstep planning with a differentiable reachability map.

The reachable region of the left foot relative to the right foot is
sampled from a simple leg model, learned by an SVM and used as a
constraint of an incremental QP footstep planner.

Usage:
    python examples/footstep_planning_demo.py
    python examples/footstep_planning_demo.py --target 1.2 0.3 0.4
    python examples/footstep_planning_demo.py --plot
"""

import argparse
import logging
import time

import numpy as np

from diffrmap.classifier import ReachabilityClassifier
from diffrmap.coordinates import Coordinates
from diffrmap.grid_map import GridMap
from diffrmap.planner import FootstepConfig
from diffrmap.planner import FootstepPlanner
from diffrmap.sample_set import RmapSampler


# stride, lateral offset and yaw of the left foot relative to the right foot
JOINT_LIMITS_LOWER = [-0.15, 0.15, -0.3]
JOINT_LIMITS_UPPER = [0.25, 0.3, 0.4]


def leg_forward_kinematics(joint_config):
    stride, lateral, yaw = joint_config
    return Coordinates(pos=[stride, lateral, 0.0], rot=[yaw, 0.0, 0.0])


def plot_footsteps(planner, grid_map, target_pose):
    import matplotlib.pyplot as plt
    from matplotlib.patches import Polygon

    _, axes = plt.subplots(1, 2, figsize=(12, 5))

    points = grid_map.slice_points(np.zeros(3))
    axes[0].scatter(points[:, 0], points[:, 1], s=10, c='tab:green')
    axes[0].set_title('reachable cells at zero yaw')
    axes[0].set_xlabel('x [m]')
    axes[0].set_ylabel('y [m]')
    axes[0].set_aspect('equal')

    ax = axes[1]
    for i, polygon in enumerate(planner.footstep_polygons()):
        color = 'tab:blue' if i % 2 == 0 else 'tab:red'
        ax.add_patch(Polygon(polygon[:, :2], closed=True, fill=False,
                             edgecolor=color))
    ax.plot(*target_pose.translation[:2], 'k*', markersize=12)
    ax.plot(0.0, 0.0, 'ko')
    ax.autoscale()
    ax.set_aspect('equal')
    ax.set_title('planned footsteps')
    plt.tight_layout()
    plt.show()


def main():
    parser = argparse.ArgumentParser(
        description='Footstep planning with a differentiable reachability map')
    parser.add_argument('--samples', type=int, default=500,
                        help='Number of reachable samples (default: 500)')
    parser.add_argument('--footstep-num', type=int, default=5,
                        help='Number of footsteps (default: 5)')
    parser.add_argument('--target', type=float, nargs=3,
                        default=[0.8, 0.2, 0.3], metavar=('X', 'Y', 'YAW'),
                        help='Target pose of the last footstep')
    parser.add_argument('--iterations', type=int, default=200,
                        help='Number of QP iterations (default: 200)')
    parser.add_argument('--solver', choices=['cvxopt', 'quadprog'],
                        default='cvxopt', help='QP solver')
    parser.add_argument('--seed', type=int, default=0)
    parser.add_argument('--save', type=str, default=None,
                        help='Save the trained classifier to this path')
    parser.add_argument('--plot', action='store_true',
                        help='Plot the reachability map and footsteps')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    sampler = RmapSampler('SE2', leg_forward_kinematics,
                          JOINT_LIMITS_LOWER, JOINT_LIMITS_UPPER,
                          random_state=args.seed)
    start = time.time()
    sample_set = sampler.run(args.samples, unreachable_num=args.samples)
    print(f"Sampled {len(sample_set.samples)} poses "
          f"({sample_set.n_reachable} reachable) "
          f"in {time.time() - start:.2f} s")

    start = time.time()
    classifier = ReachabilityClassifier.train(sample_set, gamma=5.0, C=100.0)
    print(f"Trained classifier with {len(classifier.support_vectors)} "
          f"support vectors in {time.time() - start:.2f} s")
    if args.save is not None:
        classifier.save(args.save)
        print(f"Saved classifier to {args.save}")

    grid_map = GridMap.build(classifier, [40, 40, 9],
                             sample_min=[-0.4, -0.1, -np.pi],
                             sample_max=[0.4, 0.5, np.pi])

    lateral = 0.5 * (JOINT_LIMITS_LOWER[1] + JOINT_LIMITS_UPPER[1])
    config = FootstepConfig(
        footstep_num=args.footstep_num, alternate_lr=True,
        solver=args.solver,
        initial_sample_pose=leg_forward_kinematics([0.0, lateral, 0.0]))
    planner = FootstepPlanner(classifier, config)
    target_pose = Coordinates(pos=[args.target[0], args.target[1], 0.0],
                              rot=[args.target[2], 0.0, 0.0])
    planner.set_target(target_pose)

    start = time.time()
    result = planner.run(n_iter=args.iterations)
    print(f"Ran {planner.iteration} iterations in "
          f"{time.time() - start:.2f} s, "
          f"{planner.solver_failure_count} solver failures")
    if result is not None:
        print(f"Last iteration solved: {result.solved}")
    print(f"Target error: {planner.target_error():.4f}")
    for i, (pose, value) in enumerate(zip(planner.footstep_poses(),
                                          planner.link_values())):
        x, y, _ = pose.translation
        print(f"  [{i}] x={x:+.3f} y={y:+.3f} yaw={pose.yaw:+.3f} "
              f"reachability={value:+.3f}")

    if args.plot:
        plot_footsteps(planner, grid_map, target_pose)


if __name__ == '__main__':
    main()
