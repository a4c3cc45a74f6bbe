"""TickerStream price backend."""
