"""Regional surveillance correlation for clinical documentation.

This package maps clinical presentations to syndrome categories, pulls
regional public health data, scores its clinical relevance and renders a
bounded context summary for downstream consumers.
"""
