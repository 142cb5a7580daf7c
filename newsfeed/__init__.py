"""
Backend package for the newsfeed application.

Authentication, articles, bookmarks, preferences, submissions and reading
history, persisted either in a hosted Postgres service or, when that is not
configured, in a local key-value store for offline development.
"""
