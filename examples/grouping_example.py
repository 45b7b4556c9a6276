"""
Example demonstrating semantic tab grouping.

This example shows:
1. Booting the local embedding model through its lifecycle stages
2. Grouping a mixed set of tabs by meaning
3. Falling back to domain grouping when AI mode is off

Run examples/download_model.py first to fetch the model files.
"""

import asyncio

from tab_sorter.config import get_settings, setup_logging
from tab_sorter.engine import Tab, TabGrouper
from tab_sorter.engine.errors import StageFailure


TABS = [
    Tab(id=1, url="https://react.dev/learn", title="React Documentation - Learn React"),
    Tab(id=2, url="https://vuejs.org/guide/introduction.html", title="Vue.js Guide - Introduction"),
    Tab(id=3, url="https://www.amazon.com/dp/B0C1234", title="Wireless Headphones - Amazon.com"),
    Tab(id=4, url="https://github.com/facebook/react", title="facebook/react: The library for web and native user interfaces"),
    Tab(id=5, url="https://arxiv.org/abs/1706.03762", title="Attention Is All You Need"),
    Tab(id=6, url="https://www.youtube.com/watch?v=abc", title="Lo-fi beats to code to - YouTube"),
    Tab(id=7, url="https://www.youtube.com/watch?v=def", title="Music for programming - YouTube"),
]


def print_result(result):
    print(f"Strategy: {result.strategy} ({result.total_tabs} tabs)")
    for group in result.groups:
        confidence = "n/a" if group.confidence is None else f"{group.confidence:.2f}"
        print(f"  {group.label} [{group.color.value}] confidence={confidence}")
        for tab in group.tabs:
            print(f"    - {tab.title}")
    if result.ungrouped:
        print("  Ungrouped:")
        for tab in result.ungrouped:
            print(f"    - {tab.title}")
    print()


async def main():
    """Run tab grouping example."""
    settings = get_settings()
    setup_logging(settings.log_level)

    print("=" * 80)
    print("Tab Grouping Example")
    print("=" * 80)
    print()

    grouper = TabGrouper(settings)
    grouper.notifier.subscribe(lambda event: print(f"  [event] {event.type}"))

    try:
        await grouper.initialize()
    except StageFailure as e:
        print(f"✗ {e}")
        print("  Continuing with domain grouping.")
        print()

    print("-" * 80)
    print("Semantic grouping")
    print("-" * 80)
    print_result(await grouper.group_tabs(TABS))

    print("-" * 80)
    print("Domain grouping (AI mode off)")
    print("-" * 80)
    print_result(await grouper.group_tabs(TABS, use_ai=False))


if __name__ == "__main__":
    asyncio.run(main())
