"""Per-chart market data pipeline.

A ChartSession owns one KlineSeries and keeps it in sync:

1. load() discards everything derived from the previous symbol/interval
2. Subscribes to the live stream first, buffering live bars while the
   historical bootstrap is in flight
3. Bootstraps the series from REST, then replays the buffered live bars
4. Every accepted series mutation recomputes indicators and the signal
   and notifies update listeners

Live bars carrying a stale identity (an older load, or a different
symbol/interval) are ignored and never merged.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable

from app.clients.binance_rest import BinanceRestClient
from app.config import get_settings
from app.services.stream_multiplexer import StreamMultiplexer
from core.indicators import IndicatorCalculator, IndicatorSnapshot
from core.models import IndicatorConfig, Kline, KlineSeries, LeveragedReturns, ScalpingSignal
from core.strategy.scalping import ScalpingConfig, evaluate_signal
from core.subscriptions import SubscriberRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChartUpdate:
    """State published after every series mutation."""

    symbol: str
    interval: str
    series: KlineSeries
    indicators: IndicatorSnapshot
    signal: ScalpingSignal
    price_change_percent: float
    returns: LeveragedReturns


class ChartSession:
    """Keeps one chart's series, indicators and signal up to date."""

    def __init__(
        self,
        rest_client: BinanceRestClient,
        multiplexer: StreamMultiplexer,
        indicator_config: IndicatorConfig | None = None,
        scalping_config: ScalpingConfig | None = None,
        history_limit: int | None = None,
        max_size: int | None = None,
        leverage: float | None = None,
    ):
        settings = get_settings()
        self._rest = rest_client
        self._mux = multiplexer
        self._calculator = IndicatorCalculator(
            indicator_config
            or IndicatorConfig(
                sma_period=settings.sma_period,
                ema_fast_period=settings.ema_fast_period,
                ema_slow_period=settings.ema_slow_period,
                rsi_period=settings.rsi_period,
            )
        )
        self._scalping_config = scalping_config or ScalpingConfig()
        self.history_limit = history_limit or settings.history_limit
        self.max_size = max_size or settings.series_max_size
        self.leverage = leverage or settings.display_leverage

        self.series: KlineSeries | None = None
        self.indicators: IndicatorSnapshot | None = None
        self.signal: ScalpingSignal | None = None
        self.price_change_percent = 0.0

        self._generation = 0
        self._live_enabled = True
        self._unsubscribe: Callable[[], None] | None = None
        self._bootstrapping = False
        self._pending: list[Kline] = []
        self._updates: SubscriberRegistry[ChartUpdate] = SubscriberRegistry("chart-updates")

    @property
    def is_live(self) -> bool:
        return self._unsubscribe is not None

    def on_update(self, callback: Callable[[ChartUpdate], None]) -> Callable[[], None]:
        """Register an update listener. Returns a function that removes it."""
        token = self._updates.register(callback)
        return partial(self._updates.unregister, token)

    async def load(self, symbol: str, interval: str) -> bool:
        """
        Switch the chart to a symbol/interval and bootstrap it.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: K-line interval (e.g., "5m")

        Returns:
            True if the series holds data afterwards; False if there is no
            data yet or a newer load superseded this one
        """
        self._generation += 1
        generation = self._generation

        self._stop_live()
        self.series = KlineSeries(symbol=symbol.upper(), interval=interval, max_size=self.max_size)
        self.indicators = None
        self.signal = None
        self.price_change_percent = 0.0
        self._pending = []
        self._bootstrapping = True

        if self._live_enabled:
            self._start_live()

        try:
            klines = await self._rest.fetch_history(symbol, interval, self.history_limit)
        except BaseException:
            if generation == self._generation:
                self._bootstrapping = False
                self._pending = []
            raise

        if generation != self._generation:
            logger.debug(f"Discarding superseded bootstrap for {symbol} {interval}")
            return False

        pending, self._pending = self._pending, []
        self._bootstrapping = False
        self.series.bootstrap(klines)
        for kline in pending:
            self.series.merge(kline)

        if not self.series:
            logger.info(f"No history yet for {symbol} {interval}")
            return False

        logger.info(
            f"Loaded {len(self.series)} klines for {self.series.symbol} {interval} "
            f"({len(pending)} live bars replayed)"
        )
        self._recompute()
        return True

    def set_live_updates(self, enabled: bool) -> None:
        """Pause or resume the live feed for the current chart."""
        self._live_enabled = enabled
        if not enabled:
            self._stop_live()
        elif self.series is not None and not self.is_live:
            self._start_live()

    def close(self) -> None:
        """Release the live subscription and invalidate in-flight work."""
        self._generation += 1
        self._stop_live()

    def _start_live(self) -> None:
        symbol, interval = self.series.symbol, self.series.interval
        self._unsubscribe = self._mux.subscribe(
            symbol,
            interval,
            partial(self._on_live_kline, symbol, interval, self._generation),
        )

    def _stop_live(self) -> None:
        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            unsubscribe()

    def _on_live_kline(self, symbol: str, interval: str, generation: int, kline: Kline) -> None:
        series = self.series
        if generation != self._generation or series is None or not series.matches(symbol, interval):
            logger.debug(f"Ignoring live bar for inactive {symbol} {interval}")
            return

        if self._bootstrapping:
            self._pending.append(kline)
            return

        if series.merge(kline):
            self._recompute()

    def _recompute(self) -> None:
        series = self.series
        indicators = self._calculator.calculate_all(series)
        signal = evaluate_signal(
            series.klines,
            indicators.latest_ema_fast,
            indicators.latest_ema_slow,
            indicators.latest_rsi,
            series.interval,
            self._scalping_config,
        )

        first = series.klines[0]
        self.price_change_percent = (series.last.close - first.open) / first.open * 100
        self.indicators = indicators
        self.signal = signal

        self._updates.deliver(
            ChartUpdate(
                symbol=series.symbol,
                interval=series.interval,
                series=series,
                indicators=indicators,
                signal=signal,
                price_change_percent=self.price_change_percent,
                returns=signal.leveraged_returns(self.leverage),
            )
        )
