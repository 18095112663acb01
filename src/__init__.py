"""Application Layer.

Infrastructure and application services that orchestrate domain logic.
This layer owns state, configuration and the caller-facing result shapes.
"""
