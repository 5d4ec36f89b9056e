"""
Shift Planning System with Team Rotation and Weekly Versions

Plans weekly AM/PM/Night shifts for three teams, keeps named versions of
every week, protects locked weeks from changes, and exports weekly
reports to Excel and PDF.
"""

__version__ = "1.0.0"
__author__ = "Shift Planner Team"
