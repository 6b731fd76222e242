"""Personalized news curation pipeline.

Turns a list of user interests into a ranked, deduplicated and summarized
briefing: schedule interests, collect and curate articles, learn topic
affinities, rank, fetch full content and summarize.
"""

__version__ = "0.1.0"
