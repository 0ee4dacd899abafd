from collections.abc import Iterable

from src.sim_common.enums import CompanyResearchStatus
from src.sim_research.domain.models import ResearchNode


def prerequisites_met(node: ResearchNode, completed_node_ids: Iterable[str]) -> bool:
    completed = set(completed_node_ids)
    return all(p in completed for p in node.prerequisite_ids)


def open_status_for(node: ResearchNode, completed_node_ids: Iterable[str]) -> str:
    """Status of a node nobody is researching: AVAILABLE once every prerequisite is done."""
    if prerequisites_met(node, completed_node_ids):
        return CompanyResearchStatus.AVAILABLE.value
    return CompanyResearchStatus.LOCKED.value
