"""GViz sheet access: fetch a day tab and parse its grid."""

from gviz_timetable.sheets.fetcher import GridFetcher, unwrap_gviz
from gviz_timetable.sheets.grid import GridCell, infer_lab_span, parse_classroom_data, parse_grid

__all__ = [
    "GridFetcher",
    "GridCell",
    "infer_lab_span",
    "parse_classroom_data",
    "parse_grid",
    "unwrap_gviz",
]
