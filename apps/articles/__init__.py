"""
Articles app for the Legal Newsroom.

Provides articles, legal sections, the editorial workflow and scheduled
publication.
"""
