"""
Estate Store - listing storage and quota core

Data-access layer behind the real estate listing site:
- Filtered, sorted and paginated property queries
- Wave (promotional channel) quotas per agent
- Favorites, inquiries and search history
- Customer activity points and levels
- Interchangeable SQL and in-memory backends
"""

__version__ = "1.0.0"
