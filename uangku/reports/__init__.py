"""Period reports over a transaction repository."""

from uangku.reports.summary import ReportBuilder, month_range, summarize, week_range

__all__ = ["ReportBuilder", "month_range", "summarize", "week_range"]
