"""Curated TON ecosystem news shown on the Mini-App home screen.

The feed is a static list, newest first, until the official channels are
polled.
"""

from datetime import date

from tonedu.news.schemas import NewsItem, NewsSource

TON_NEWS: tuple[NewsItem, ...] = (
    NewsItem(
        id="1",
        title="TON Launches New Developer Program",
        content="The TON Foundation announced a $10M grant program for Web3 developers building on TON blockchain.",
        date=date(2025, 3, 28),
        source="telegram",
        url="https://t.me/toncoin",
        image_url="/ton-dev-program.jpg",
    ),
    NewsItem(
        id="2",
        title="TON Coin Reaches New All-Time High",
        content="TON Coin reached a new all-time high of $9.75 after major exchange integrations and ecosystem growth.",
        date=date(2025, 3, 27),
        source="twitter",
        url="https://x.com/ton_blockchain",
    ),
    NewsItem(
        id="3",
        title="New TON Bridge Simplifies Cross-Chain Transfers",
        content=(
            "The new TON Bridge enables seamless asset transfers between TON and major blockchains "
            "like Ethereum and BSC."
        ),
        date=date(2025, 3, 25),
        source="telegram",
        url="https://t.me/tonblockchain",
    ),
    NewsItem(
        id="4",
        title="TON Hackathon Announces Winners",
        content=(
            "The global TON hackathon concluded with innovative projects in DeFi, Gaming, and Social "
            "categories sharing $1M in prizes."
        ),
        date=date(2025, 3, 22),
        source="twitter",
        url="https://x.com/ton_blockchain",
    ),
    NewsItem(
        id="5",
        title="TON Connect 2.0 Released for Seamless Wallet Integration",
        content=(
            "The new TON Connect 2.0 protocol makes it easier for developers to integrate TON wallets "
            "into their dApps."
        ),
        date=date(2025, 3, 20),
        source="telegram",
        url="https://t.me/tonblockchain",
    ),
)


def list_news(source: NewsSource | None = None, limit: int | None = None) -> list[NewsItem]:
    """Newest first, optionally restricted to one source channel."""
    items = sorted(TON_NEWS, key=lambda item: item.date, reverse=True)
    if source is not None:
        items = [item for item in items if item.source == source]
    return items[:limit] if limit is not None else items
