"""Static validation of quest chain step graphs."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Dict, Iterable, List, Mapping

from questline.domain.defs import QuestChainDef


Severity = str


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def validate_chain_graph(chain: QuestChainDef, quest_ids: Collection[str]) -> list[Issue]:
    """Check one chain's steps and branches.

    A step leads to the step numbered one higher unless a branch follows it,
    in which case it leads to each choice's ``next_step``. Branch targets that
    do not exist end the chain, so they are reported as warnings.
    """
    issues: list[Issue] = []
    step_numbers: list[int] = []
    for step in chain.steps:
        if step.step in step_numbers:
            issues.append(_issue("ERROR", "DUPLICATE_STEP", "Duplicate step number.", chain, step=step.step))
            continue
        step_numbers.append(step.step)
        if step.quest_id not in quest_ids:
            issues.append(
                _issue(
                    "ERROR",
                    "UNKNOWN_QUEST",
                    "Step references a missing quest.",
                    chain,
                    step=step.step,
                    quest_id=step.quest_id,
                )
            )
    known = set(step_numbers)
    if 1 not in known:
        issues.append(_issue("ERROR", "MISSING_FIRST_STEP", "Chain has no step 1.", chain))

    for branch in chain.branches:
        if branch.after_step not in known:
            issues.append(
                _issue(
                    "ERROR",
                    "ORPHAN_BRANCH",
                    "Branch follows a step that does not exist.",
                    chain,
                    after_step=branch.after_step,
                )
            )
        for choice in branch.choices:
            if choice.next_step not in known:
                issues.append(
                    _issue(
                        "WARN",
                        "UNKNOWN_BRANCH_TARGET",
                        "Branch choice leads past the last step.",
                        chain,
                        choice=choice.label,
                        next_step=choice.next_step,
                    )
                )

    edges = _build_edges(chain, known)
    _validate_reachability(chain, edges, issues)
    _validate_cycles(chain, edges, issues)
    return issues


def validate_chains(chains: Iterable[QuestChainDef], quest_ids: Collection[str]) -> list[Issue]:
    issues: list[Issue] = []
    for chain in chains:
        issues.extend(validate_chain_graph(chain, quest_ids))
    return issues


def _build_edges(chain: QuestChainDef, known: set[int]) -> Dict[int, List[int]]:
    edges: Dict[int, List[int]] = {}
    for step_number in sorted(known):
        branch = chain.branch_after(step_number)
        if branch is not None:
            targets = [choice.next_step for choice in branch.choices]
        else:
            targets = [step_number + 1]
        edges[step_number] = [target for target in targets if target in known]
    return edges


def _validate_reachability(chain: QuestChainDef, edges: Mapping[int, List[int]], issues: list[Issue]) -> None:
    if 1 not in edges:
        return
    reachable: set[int] = set()
    stack = [1]
    while stack:
        step_number = stack.pop()
        if step_number in reachable:
            continue
        reachable.add(step_number)
        stack.extend(edges.get(step_number, []))
    for step_number in sorted(set(edges) - reachable):
        issues.append(
            _issue("WARN", "UNREACHABLE_STEP", "Step is unreachable from step 1.", chain, step=step_number)
        )


def _validate_cycles(chain: QuestChainDef, edges: Mapping[int, List[int]], issues: list[Issue]) -> None:
    visited: set[int] = set()
    on_path: list[int] = []
    reported: set[tuple[int, ...]] = set()

    def dfs(current: int) -> None:
        visited.add(current)
        on_path.append(current)
        for target in edges.get(current, []):
            if target in on_path:
                cycle = tuple(on_path[on_path.index(target):])
                if cycle not in reported:
                    reported.add(cycle)
                    issues.append(
                        _issue(
                            "ERROR",
                            "STEP_CYCLE",
                            "Steps form a cycle.",
                            chain,
                            steps=" -> ".join(str(step) for step in cycle + (target,)),
                        )
                    )
            elif target not in visited:
                dfs(target)
        on_path.pop()

    for step_number in sorted(edges):
        if step_number not in visited:
            dfs(step_number)


def _issue(severity: Severity, code: str, message: str, chain: QuestChainDef, **context: object) -> Issue:
    details = {"chain_id": chain.chain_id}
    details.update({key: str(value) for key, value in context.items()})
    return Issue(severity=severity, code=code, message=message, context=details)
