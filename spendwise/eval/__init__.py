"""
Evaluation metrics and decision-trace export.
"""

from .metrics import generate_evaluation_report
from .report import export_decision_traces, export_report_json, format_summary

__all__ = ['generate_evaluation_report', 'export_decision_traces', 'export_report_json', 'format_summary']
