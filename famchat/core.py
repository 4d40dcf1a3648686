import logging
from prometheus_client import Counter, Gauge, start_http_server
from .models import engine, init_models

logger = logging.getLogger('famchat')

ONLINE_USERS = Gauge('famchat_online_users', 'Users with a registered real-time connection')
MESSAGES_SENT = Counter('famchat_messages_sent_total', 'Messages stored in the conversation store')
LIVE_PUSHES = Counter('famchat_live_pushes_total', 'Payloads pushed over real-time connections', ['event'])


def init_metrics(port: int = 8001):
    """Initialize Prometheus metrics server"""
    if not port:
        logger.info({'msg': 'metrics_disabled'})
        return
    try:
        start_http_server(port)
        logger.info({'msg': 'metrics_started', 'port': port})
    except OSError as e:
        logger.warning({'msg': 'metrics_start_failed', 'port': port, 'error': str(e)})


async def db_startup(create_tables: bool = True):
    if create_tables:
        await init_models()
        logger.info({'msg': 'db_tables_ready'})


async def shutdown_connections():
    """Gracefully shutdown all connections"""
    logger.info({'msg': 'shutdown_connections'})
    await engine.dispose()
