"""Analysis - statistics and rule-based pattern detection

Components:
    data_analyzer.py: Task/goal/evidence statistics and the pattern detectors
    weekly_metrics.py: Weekly alignment/honesty/completion scores and
        reflection excuse counting
"""
