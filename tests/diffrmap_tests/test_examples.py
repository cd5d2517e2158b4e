import os
import os.path as osp
import subprocess
import sys
import tempfile
import unittest

import pytest


run_examples = (
    os.environ.get("RUN_EXAMPLE_TESTS", "false").lower() == "true"
    or os.environ.get("GITHUB_ACTIONS", "false").lower() == "true"
)

pytestmark = pytest.mark.skipif(
    not run_examples,
    reason="Skipping example tests "
           + "unless RUN_EXAMPLE_TESTS is set or running in GitHub Actions"
)


class TestExampleScripts(unittest.TestCase):

    def test_footstep_planning_demo(self):
        examples_dir = osp.join(osp.dirname(__file__), "..", "..", "examples")
        script = osp.join(examples_dir, "footstep_planning_demo.py")
        self.assertTrue(osp.exists(script),
                        "Example not found: {}".format(script))

        with tempfile.TemporaryDirectory() as tmp_dir:
            cmd = [sys.executable, script,
                   "--samples", "200", "--iterations", "20",
                   "--save", osp.join(tmp_dir, "classifier.npz")]
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
            self.assertEqual(
                result.returncode, 0,
                "stdout:\n{}\nstderr:\n{}".format(
                    result.stdout.decode(), result.stderr.decode()))
            self.assertTrue(osp.exists(osp.join(tmp_dir, "classifier.npz")))
