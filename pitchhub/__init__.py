"""Backend package: pitch analysis pipeline, matching engine, store, and API.

Pitches flow one way: raw pitch -> analysis pipeline -> enriched record ->
matching / recommendation -> ranked results for the HTTP layer.
"""
