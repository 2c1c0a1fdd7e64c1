"""
Reporting module.

Route rollup table, dashboard bundle and evaluation charts.
"""

from reporting.export import export_bundle, load_bundle
from reporting.rollup import collect_airports, publish_rollup, route_rollup

__all__ = [
    "route_rollup",
    "publish_rollup",
    "collect_airports",
    "export_bundle",
    "load_bundle",
]
