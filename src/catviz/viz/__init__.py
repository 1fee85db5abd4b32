"""Rendering backends.

Renderers consume a :class:`catviz.layout.planner.ChartScene` and never
aggregate or lay out data themselves. Images are written to disk so they
work in headless CI/CD environments.
"""
