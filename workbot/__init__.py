"""
Workbot: office-attendance question answering
"""
