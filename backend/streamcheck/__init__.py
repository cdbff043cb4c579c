"""
Stream overlap checker.
Cross-references a player's match history with their archived broadcasts and
reports how many matches were played on stream.
"""
