"""
Workflows package - Demo questionnaires.
"""

from quizflow.workflows.product_finder import DEMO_FLOWS, seed_demo_flows

__all__ = ["DEMO_FLOWS", "seed_demo_flows"]
