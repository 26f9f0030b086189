"""
Analysis Package - Line-level helpers shared by the store and the UI

Package Structure:
- timestamp: Best-effort timestamp extraction (parse_timestamp)
- time_filter: Time window visibility rule (TimeFilter, parse_time_bound)
- marking: Line bookmarks (Marking, Mark)
- history: Recall of earlier search queries and rule patterns (History)
- expansion: Filtered-out lines shown below a visible line (Expansions)
"""
