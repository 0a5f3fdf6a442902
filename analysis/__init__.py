"""
Analysis package for the Deadlock Detection & Recovery engine.
Contains the detection event log.
"""
