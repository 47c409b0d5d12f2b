"""Test suite; runs with the task queue and scheduler disabled."""

import os

os.environ["ENVIRONMENT"] = "test"
