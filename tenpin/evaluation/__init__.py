"""
Evaluation Package
==================

Harness for playing full series with an automated bowler and summarizing
its averages.
"""

from tenpin.evaluation.run_series import evaluate_bowler, load_bowler

__all__ = ["evaluate_bowler", "load_bowler"]
