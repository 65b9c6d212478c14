"""
LangGraph nodes for the augmented answer pipeline.

Each node represents a discrete step in the workflow:
    - index_status: Reads whether the repository is indexed
    - retriever: Fetches first-round and expanded code chunks
    - generator: Produces the first and (optionally) second answer
    - sufficiency: Flags answers that admit missing information

All nodes follow the signature:
    def node_name(state: AnswerState) -> AnswerState
"""

from repochat.nodes.index_status import check_index_node
from repochat.nodes.retriever import expanded_retriever_node, retriever_node
from repochat.nodes.generator import generator_node, regenerator_node
from repochat.nodes.sufficiency import is_insufficient, sufficiency_check_node

__all__ = [
    "check_index_node",
    "retriever_node",
    "expanded_retriever_node",
    "generator_node",
    "regenerator_node",
    "sufficiency_check_node",
    "is_insufficient",
]
