"""
Models package for the Deadlock Detection & Recovery engine.
Contains the resource allocation graph, its records, and caller-side state.
"""
