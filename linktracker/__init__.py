"""Link tracking core: in-memory and SQLite chat/link stores, transactions, GitHub and Stack Overflow activity clients, update handling and a links auth check."""

__version__ = "0.1.0"