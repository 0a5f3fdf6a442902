"""
Algorithms package for the Deadlock Detection & Recovery engine.
Contains cycle detection, the Banker's safety checker, and recovery planning.
"""
