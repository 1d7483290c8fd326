"""Core decision-support logic for eczema flare risk.

This package contains the domain models, the risk and recommendation engines,
and the orchestration around them, isolated from storage and presentation.
"""
