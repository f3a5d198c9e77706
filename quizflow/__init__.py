"""
QuizFlow - Branching product-selection questionnaires.

Operators author categories, ordered steps, options and conditional jumps;
end users walk them one step at a time toward a recommendation.
"""

__version__ = "1.0.0"
