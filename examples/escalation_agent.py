"""Walk an agent from data collection to answering and escalating.

Queries with many sentence endings are labeled 1 here, standing in for the
labels an orchestrator would collect from its data collection roles.
"""

import logging

from boostgate import Answer, EscalationAgent

logging.basicConfig(level=logging.INFO)

queries = [
    "Where is the nearest station?",
    "Help! It broke. Again! Why?",
    "list files",
    "Stop. Wait. Go back. Now!",
    "summarize this report",
    "What? Really? Are you sure? Okay.",
]

agent = EscalationAgent(confidence_threshold=0.6, min_child_weight=0.5, eta=1.0)

for q in queries:
    action = agent.think(q)
    print(f"{q!r}: delegate to {[r.value for r in action.targets]}")

for i, q in enumerate(queries):
    agent.label_sample(i, int(q.count("?") + q.count("!") + q.count(".") > 1))
agent.train()
print("\n".join(agent.tree.text_dump()))

for q in ["Is it done? Yes. Thanks!", "open settings", "maybe this one"]:
    action = agent.think(q)
    if isinstance(action, Answer):
        print(f"{q!r}: {action.message}")
    else:
        print(f"{q!r}: delegate to {[r.value for r in action.targets]}")
