"""带连接池的 HTTP 客户端工厂。

httpx.Client 本身线程安全，可在多个并发调用之间共享；
这里只负责按 Settings 配置连接池上限与超时。
"""

import httpx


def create_http_client(settings, timeout: float | None = None) -> httpx.Client:
    """根据配置创建共享的 httpx.Client。

    Args:
        settings: 提供 http_timeout / connect_timeout / max_connections 等字段的配置对象。
        timeout: 覆盖 settings.http_timeout 的单次请求超时（秒）。
    """

    total = timeout if timeout is not None else settings.http_timeout
    return httpx.Client(
        timeout=httpx.Timeout(total, connect=min(settings.connect_timeout, total)),
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive_connections,
            keepalive_expiry=settings.keepalive_expiry,
        ),
        trust_env=False,
    )
