"""searchsynth - answer a query from aggregated web search results.

Simple CLI that runs one streamed search and prints its events.
"""

import argparse
import asyncio

from searchsynth.agents.orchestrator import SearchOrchestrator
from searchsynth.config import settings
from searchsynth.services.context import build_context


async def run_search(query: str, store_backend: str | None = None):
    """Run a search for the given query."""
    print(f"Query: {query}")
    print("-" * 50)

    cfg = settings.model_copy(update={"store_backend": store_backend}) if store_backend else settings
    ctx = build_context(cfg)
    conversation = await ctx.store.create_conversation(query)
    orchestrator = SearchOrchestrator(ctx, str(conversation["id"]))

    async for event in orchestrator.search(query):
        event_type = event.event.value
        data = event.data

        if event_type == "processing":
            print(f"\n[~] {data.get('step')}...")

        elif event_type == "decomposition":
            sub_queries = data.get("subQueries", [])
            print(f"[*] Sub-queries ({len(sub_queries)}):")
            for i, sub_query in enumerate(sub_queries, 1):
                print(f"  {i}. {sub_query[:80]}")

        elif event_type == "search":
            progress = data.get("progress", {})
            print(
                f"  [+] {progress.get('current')}/{progress.get('total')} "
                f"{data.get('subQuery', '')[:60]}: {len(data.get('partialResults', []))} results"
            )

        elif event_type == "complete":
            print(f"\n[*] Complete ({len(data.get('searchResults', []))} results)")
            visualization = data.get("visualizationData")
            if visualization:
                print(f"   Visualization: {visualization.get('type')} ({visualization.get('status')})")
            print(f"\n{'='*50}")
            print(data.get("summaryText", ""))
            citations = data.get("citations", [])
            if citations:
                print(f"\n{'='*50}")
                for citation in citations:
                    print(f"[{citation['number']}] {citation['source']} - {citation['url']}")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")


def main():
    parser = argparse.ArgumentParser(description="searchsynth search and synthesis")
    parser.add_argument("--query", "-q", required=True, help="Search query")
    parser.add_argument(
        "--store",
        choices=["memory", "supabase"],
        help="Persistence backend (default: from config)",
    )

    args = parser.parse_args()

    asyncio.run(run_search(args.query, args.store))


if __name__ == "__main__":
    main()
