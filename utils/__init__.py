"""
Utilities package for the Deadlock Detection & Recovery engine.
Contains the logger and the scenario loader.
"""
