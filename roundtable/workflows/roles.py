from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

QueryTransform = Callable[[str], str]


def identity(query: str) -> str:
    return query


@dataclass(frozen=True)
class AgentRole:
    """Specialization for one team member; ``query_transform`` rewrites the shared query."""

    name: str
    description: str = ""
    query_transform: QueryTransform = identity

    @classmethod
    def from_template(cls, name: str, description: str, template: str) -> AgentRole:
        """Role whose transform substitutes the query into ``{query}`` placeholders."""

        def transform(query: str) -> str:
            return template.replace("{query}", query)

        return cls(name=name, description=description, query_transform=transform)


@dataclass
class TeamConfiguration:
    roles: Dict[str, AgentRole] = field(default_factory=dict)
    default_role: Optional[AgentRole] = None

    def role_for(self, agent_name: str) -> AgentRole | None:
        return self.roles.get(agent_name, self.default_role)
