"""
Anchor presets: named M1 D1 anchors per user, the active-anchor selection
and its change notifications, plus the persistence contract behind them.
"""
