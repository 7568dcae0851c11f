"""Reusable patterns for the price-updates service.

Each module is a self-contained, framework-free building block: domain
configuration, the pricing function, the rule model and evaluator, the rule
store, the workflow state machine, and the async repository layer.
"""
