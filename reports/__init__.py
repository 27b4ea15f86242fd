"""
Reports package - processing report assembly
"""
from reports.assembler import assemble, report_filename, truncate_input

__all__ = [
    "assemble",
    "report_filename",
    "truncate_input",
]
