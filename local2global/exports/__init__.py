"""Result aggregation.

- reports.py: MigrationReport builder, ChildStats aggregation, Markdown summary
"""
