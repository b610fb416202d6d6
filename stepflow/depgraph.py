"""Step-dependency graph: which step reads the result of which.

Edges run from a step to each step it references (``step 3 -> step 1`` for
``step 3: summarize(step 1)``). The validator uses it for cycle detection
and the graph generator for data-flow edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .ast_nodes import Step, Workflow, iter_step_references


@dataclass
class StepGraph:
    """Adjacency list keyed by step number."""
    edges: dict[int, list[int]] = field(default_factory=dict)

    @classmethod
    def from_workflow(cls, workflow: Workflow, include_branches: bool = False) -> StepGraph:
        """Build the graph from a workflow's steps.

        Only top-level steps are scanned unless ``include_branches`` is set,
        in which case steps inside conditional branches are added too.
        """
        return cls.from_steps(workflow.all_steps(include_branches=include_branches))

    @classmethod
    def from_steps(cls, steps: list[Step]) -> StepGraph:
        graph = cls()
        for step in steps:
            targets = graph.edges.setdefault(step.number, [])
            if step.command is None:
                continue
            for arg in step.command.arguments:
                for ref in iter_step_references(arg):
                    targets.append(ref.step_number)
        return graph

    @property
    def nodes(self) -> list[int]:
        return list(self.edges)

    def references(self) -> list[tuple[int, int]]:
        """Return (referencing step, referenced step) pairs in encounter order."""
        return [(src, dst) for src, targets in self.edges.items() for dst in targets]

    def find_cycle(self) -> list[int] | None:
        """DFS with an on-stack set; return the first cycle found as a path."""
        visited: set[int] = set()
        on_stack: list[int] = []

        def dfs(node: int) -> list[int] | None:
            visited.add(node)
            on_stack.append(node)
            for dep in self.edges.get(node, []):
                if dep in on_stack:
                    return on_stack[on_stack.index(dep):] + [dep]
                if dep not in visited and dep in self.edges:
                    cycle = dfs(dep)
                    if cycle:
                        return cycle
            on_stack.pop()
            return None

        for node in self.edges:
            if node not in visited:
                cycle = dfs(node)
                if cycle:
                    return cycle
        return None

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None
