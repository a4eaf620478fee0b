"""Order execution service using ccxt for Binance Futures.

Implements the Broker capability used by agents: a market entry order
followed by a reduce-only trailing stop that closes the position.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

import ccxt.async_support as ccxt

from app.config import get_settings
from core.models import OrderReceipt, OrderSide, OrderType, resolve_pip_size
from core.strategy import OrderError

logger = logging.getLogger(__name__)

# Binance USDⓈ-M accepts trailing callback rates of 0.1% to 10% in 0.1 steps
MIN_CALLBACK_RATE = Decimal("0.1")
MAX_CALLBACK_RATE = Decimal("10")


def trailing_callback_rate(distance: Decimal, price: Decimal) -> Decimal:
    """Convert a trailing distance (price units) to a Binance callback rate (%)."""
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    rate = (distance / price * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return min(max(rate, MIN_CALLBACK_RATE), MAX_CALLBACK_RATE)


class OrderService:
    """
    Service for executing orders on Binance Futures via ccxt.

    Supports:
    - Market orders for entry
    - Trailing stop exits sized in pips
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        testnet: bool = True,
        pip_sizes: dict[str, Decimal] | None = None,
    ):
        """
        Initialize order service.

        Args:
            api_key: Binance API key (from settings if None)
            api_secret: Binance API secret (from settings if None)
            testnet: Simulate orders instead of trading (default True for safety)
            pip_sizes: Pip size per instrument (instrument registry if missing)
        """
        settings = get_settings()
        self._api_key = api_key or settings.binance_api_key
        self._api_secret = api_secret or settings.binance_api_secret
        self._testnet = testnet
        self._trading_enabled = not testnet
        self._pip_sizes = dict(pip_sizes or {})

        self._exchange: ccxt.binanceusdm | None = None

    async def connect(self) -> None:
        """Initialize connection to exchange."""
        if self._exchange:
            return

        self._exchange = ccxt.binanceusdm({
            "apiKey": self._api_key,
            "secret": self._api_secret,
            "enableRateLimit": True,
            "options": {
                "defaultType": "future",
            },
        })

        if self._testnet:
            # Binance Futures testnet is deprecated in ccxt; stay on
            # production endpoints but never send orders.
            logger.warning(
                "Testnet mode: connected to PRODUCTION with trading disabled. "
                "Orders will be simulated."
            )
            self._trading_enabled = False
        else:
            logger.warning("Connected to Binance Futures PRODUCTION - USE WITH CAUTION")
            self._trading_enabled = True

        await self._exchange.load_markets()
        logger.info(f"Loaded {len(self._exchange.markets)} markets")

    async def close(self) -> None:
        """Close exchange connection."""
        if self._exchange:
            await self._exchange.close()
            self._exchange = None

    def _pip_size(self, instrument: str) -> Decimal:
        if instrument in self._pip_sizes:
            return self._pip_sizes[instrument]
        try:
            return resolve_pip_size(instrument)
        except KeyError as e:
            raise OrderError(f"No pip size known for {instrument}") from e

    async def place_order(
        self,
        instrument: str,
        units: int,
        side: OrderSide,
        order_type: OrderType = OrderType.MARKET,
        trailing_stop_pips: int | None = None,
    ) -> OrderReceipt:
        """
        Place an entry order, optionally protected by a trailing stop.

        Args:
            instrument: Trading pair (e.g., "BTCUSDT")
            units: Order quantity
            side: Buy or sell
            order_type: Only market orders are supported
            trailing_stop_pips: Trailing stop distance in pips

        Returns:
            Receipt with the entry order id

        Raises:
            OrderError: If the exchange rejects or fails either order, or the
                trailing stop cannot be sized for the instrument
        """
        if order_type != OrderType.MARKET:
            raise OrderError(f"Unsupported order type: {order_type.value}")

        # Resolve the stop distance before opening a position it cannot protect
        distance = self._pip_size(instrument) * trailing_stop_pips if trailing_stop_pips else None

        try:
            if not self._exchange:
                await self.connect()

            if not self._trading_enabled:
                logger.warning(
                    f"Trading disabled - simulating {side.value} {instrument} "
                    f"qty={units} trailing_stop={trailing_stop_pips}pips"
                )
                return OrderReceipt(
                    order_id="SIMULATED",
                    message=f"Simulated {side.value} order for {instrument} ({units} units)",
                )

            logger.info(f"Placing {side.value} market order: {instrument} qty={units}")
            entry = await self._exchange.create_order(
                symbol=instrument,
                type="market",
                side=side.value,
                amount=float(units),
            )
            logger.info(f"Order placed: {entry['id']} status={entry.get('status')}")

            if distance is not None:
                await self._place_trailing_stop(instrument, units, side, entry, distance)
        except ccxt.BaseError as e:
            raise OrderError(f"{instrument} {side.value} order failed: {e}") from e

        return OrderReceipt(order_id=str(entry["id"]))

    async def _place_trailing_stop(
        self,
        instrument: str,
        units: int,
        side: OrderSide,
        entry: dict,
        distance: Decimal,
    ) -> dict:
        """Place a reduce-only trailing stop closing the entry position."""
        entry_price = entry.get("average") or entry.get("price")
        if not entry_price:
            ticker = await self._exchange.fetch_ticker(instrument)
            entry_price = ticker["last"]

        try:
            rate = trailing_callback_rate(distance, Decimal(str(entry_price)))
        except (ValueError, ArithmeticError) as e:
            raise OrderError(
                f"{instrument} entry {entry['id']} filled but trailing stop cannot be priced: {e}"
            ) from e
        exit_side = OrderSide.SELL if side == OrderSide.BUY else OrderSide.BUY

        logger.info(
            f"Placing {exit_side.value} trailing stop: {instrument} qty={units} "
            f"distance={distance} callbackRate={rate}%"
        )
        order = await self._exchange.create_order(
            symbol=instrument,
            type="TRAILING_STOP_MARKET",
            side=exit_side.value,
            amount=float(units),
            params={
                "callbackRate": float(rate),
                "reduceOnly": True,
            },
        )
        logger.info(f"Trailing stop placed: {order['id']}")
        return order
