from .cache import TTLCache, GatewayCache, CacheEntry
from .client import GatewayClient, GatewayError, TransportError, HTTPStatusError, DaemonRejectedError, unwrap_envelope
from .models import ResourceKey, ConnectionState, CommandKind, FailureKind, TradingState, Command, CommandResult
