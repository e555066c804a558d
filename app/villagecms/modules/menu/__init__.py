"""
Menu module: per-village navigation items, ordered by order_index.
"""
