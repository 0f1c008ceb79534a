"""
Agile coaching analysis.

Rule-based analyzer over issue tracker exports, team documents and
conversation history, plus the per-user coaching plan built from its output.
"""
