"""
Goal conversion archiving: per-goal totals and "visits until conversion" /
"days until conversion" distributions for a site and reporting period.
"""
