"""Exchange clients."""

from app.clients.binance_ws_book_ticker import BinanceBookTickerWebSocket, parse_book_ticker

__all__ = [
    "BinanceBookTickerWebSocket",
    "parse_book_ticker",
]
