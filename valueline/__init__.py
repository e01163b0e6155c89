"""Value-line finder for over/under count-statistic markets."""

__version__ = "0.1.0"
