"""Exchange adapter for public market data over ccxt."""

import logging

import ccxt

logger = logging.getLogger(__name__)


class ExchangeAdapter:
    """Holds a public (credential-free) ccxt client."""

    def __init__(self, config, exchange=None):
        """
        Initialize exchange adapter.

        Args:
            config: Configuration object with ``exchange_type``
            exchange: Pre-built ccxt exchange instance (tests inject a mock)
        """
        self.config = config
        self.exchange = exchange if exchange is not None else self._init_exchange(config)

    def _init_exchange(self, config):
        """
        Initialize the ccxt exchange client.

        Args:
            config: Configuration object

        Returns:
            ccxt exchange instance

        Raises:
            ValueError: If the exchange id is not known to ccxt
        """
        exchange_id = getattr(config, "exchange_type", "binance").lower()
        if exchange_id not in ccxt.exchanges:
            raise ValueError(f"Unsupported exchange type: {exchange_id}")

        exchange_class = getattr(ccxt, exchange_id)
        exchange = exchange_class({"enableRateLimit": True})
        logger.info(f"Initialized {exchange_id} public market data client")
        return exchange
