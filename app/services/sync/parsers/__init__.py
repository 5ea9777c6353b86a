"""
Pattern-based extractors for scraped pages.

Every extractor returns None (or an empty list) when its pattern is absent
so a layout change degrades a single field instead of the whole parse.
"""
