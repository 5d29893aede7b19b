"""
Wiring Example

This example demonstrates the basic document pattern:
1. Evaluate a document into a graph
2. Inspect the bound exports
3. Run the graph for a few seconds and look at what the consumer saw

Run: python examples/01-wiring/main.py
"""

import asyncio
from pathlib import Path

from blockgraph import AppSettings, ExecutionScheduler, GraphEvaluator, create_default_registry

DOCUMENT = Path(__file__).with_name("wiring.hcl")


async def main():
    settings = AppSettings(send_interval=0.5, call_interval=1.0)
    evaluator = GraphEvaluator(create_default_registry(settings))

    graph = evaluator.evaluate_source(DOCUMENT.read_text(), filename=DOCUMENT.name)

    print("Exports:")
    for name, value in graph.environment.describe().items():
        print(f"  {name} = {value}")
    print()

    scheduler = ExecutionScheduler(settings=settings)
    failures = await scheduler.run(graph.components, duration=3.0)

    consumer = graph.require("component2", "consumer")
    print(f"Failures: {len(failures)}")
    print(f"Consumer received: {consumer.received}")
    print(f"Consumer call results: {consumer.call_results}")
    print(f"Metrics: {scheduler.metrics.get_stats()}")


if __name__ == "__main__":
    asyncio.run(main())
