# services/schemas.py
"""
Function-calling tool definitions offered to the oracle, and the pydantic
records its arguments are validated into.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from utils.sanitization import clean_text


# ------------------------------------------------------------
# TOOL DEFINITIONS (OpenAI "tools" format)
# ------------------------------------------------------------
def _function_tool(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": parameters,
        },
    }


_CODE_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "description": "Code or keyword (e.g., GitHub Copilot, code generation, developer productivity, security weaknesses)",
        },
        "quote": {
            "type": "string",
            "description": "Direct quote or text snippet from the paper that supports this code (1-3 sentences that explain or mention this concept)",
        },
    },
    "required": ["name", "quote"],
}

_SUBTHEME_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "description": "Sub-theme name - identify specific aspects or components within the main theme that this paper addresses",
        },
        "description": {"type": "string", "description": "Sub-theme description"},
        "codes": {
            "type": "array",
            "description": "Specific codes/keywords found in this paper for this sub-theme, each with supporting evidence",
            "items": _CODE_SCHEMA,
        },
    },
    "required": ["name", "description", "codes"],
}

_THEME_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "description": "Theme name - extract the main thematic area from the paper content (e.g., what the paper is fundamentally about)",
        },
        "description": {"type": "string", "description": "Theme description"},
        "subthemes": {
            "type": "array",
            "description": "Sub-themes within this theme",
            "items": _SUBTHEME_SCHEMA,
        },
    },
    "required": ["name", "description", "subthemes"],
}

INSERT_PAPER_TOOL = _function_tool(
    "insert_paper",
    "Insert research paper analysis results with themes, sub-themes, codes, and reference numbers for thematic analysis",
    {
        "type": "object",
        "properties": {
            "paper_title": {"type": "string", "description": "The title of the research paper"},
            "authors": {"type": "string", "description": "The authors of the paper"},
            "year": {"type": "string", "description": "Publication year"},
            "doi": {"type": "string", "description": "DOI if available"},
            "abstract": {"type": "string", "description": "Paper abstract or summary"},
            "key_findings": {"type": "string", "description": "Key findings from the paper"},
            "methodology": {"type": "string", "description": "Research methodology used"},
            "reference_number": {
                "type": "integer",
                "description": "Sequential reference number for this paper. Use exactly the number given in the instructions.",
            },
            "themes": {
                "type": "array",
                "description": "Main themes identified in the paper",
                "items": _THEME_SCHEMA,
            },
        },
        "required": ["paper_title", "authors", "themes", "reference_number"],
    },
)


def _consolidation_tool(kind: str) -> Dict[str, Any]:
    plural = f"{kind}s"
    return _function_tool(
        f"consolidate_{plural}",
        f"Identify groups of similar {plural} that should be merged together",
        {
            "type": "object",
            "properties": {
                "consolidation_groups": {
                    "type": "array",
                    "description": f"Groups of similar {plural} that should be consolidated",
                    "items": {
                        "type": "object",
                        "properties": {
                            f"primary_{kind}": {
                                "type": "object",
                                "properties": {
                                    "id": {"type": "integer", "description": f"ID of the {kind} to keep as primary"},
                                    "name": {"type": "string", "description": f"Name of the primary {kind}"},
                                    "description": {
                                        "type": "string",
                                        "description": f"Consolidated description for the primary {kind}",
                                    },
                                },
                                "required": ["id"],
                            },
                            f"{plural}_to_merge": {
                                "type": "array",
                                "description": f"List of similar {plural} to merge into the primary {kind}",
                                "items": {
                                    "type": "object",
                                    "properties": {
                                        "id": {"type": "integer", "description": f"ID of {kind} to merge into primary"},
                                        "name": {"type": "string", "description": f"Name of {kind} to merge"},
                                    },
                                    "required": ["id"],
                                },
                            },
                            "justification": {
                                "type": "string",
                                "description": f"Reason why these {plural} should be merged",
                            },
                        },
                    },
                }
            },
            "required": ["consolidation_groups"],
        },
    )


CONSOLIDATE_THEMES_TOOL = _consolidation_tool("theme")
CONSOLIDATE_SUBTHEMES_TOOL = _consolidation_tool("subtheme")


def tool_name(tool: Dict[str, Any]) -> str:
    return tool["function"]["name"]


# ------------------------------------------------------------
# EXTRACTION RECORD
# ------------------------------------------------------------
def _require_text(value):
    # Whitespace-only titles, authors or theme names count as missing
    if isinstance(value, str):
        value = clean_text(value)
        if not value:
            raise ValueError("must not be blank")
    return value


class CodeRecord(BaseModel):
    name: str
    quote: Optional[str] = None


class SubthemeRecord(BaseModel):
    name: str
    description: Optional[str] = None
    codes: List[CodeRecord] = Field(default_factory=list)

    @field_validator("codes", mode="before")
    @classmethod
    def _accept_bare_code_names(cls, value):
        # Older extractions returned codes as plain strings
        if value is None:
            return []
        return [{"name": item, "quote": None} if isinstance(item, str) else item for item in value]


class ThemeRecord(BaseModel):
    name: str
    description: Optional[str] = None
    subthemes: List[SubthemeRecord] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _name_not_blank(cls, value):
        return _require_text(value)


class ExtractionRecord(BaseModel):
    paper_title: str = Field(min_length=1)
    authors: str = Field(min_length=1)
    themes: List[ThemeRecord] = Field(min_length=1)
    reference_number: Optional[int] = None

    year: Optional[str] = None
    doi: Optional[str] = None
    abstract: Optional[str] = None
    key_findings: Optional[str] = None
    methodology: Optional[str] = None

    @field_validator("paper_title", "authors", mode="before")
    @classmethod
    def _not_blank(cls, value):
        return _require_text(value)

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, value):
        if value is None:
            return None
        return str(value)

    def code_count(self) -> int:
        return sum(len(sub.codes) for theme in self.themes for sub in theme.subthemes)


# ------------------------------------------------------------
# CONSOLIDATION PROPOSALS
# ------------------------------------------------------------
class EntityRef(BaseModel):
    id: int
    name: Optional[str] = None
    description: Optional[str] = None


class MergeGroup(BaseModel):
    """One oracle-proposed merge: keep `primary`, fold `to_merge` into it."""
    primary: EntityRef
    to_merge: List[EntityRef] = Field(default_factory=list)
    justification: Optional[str] = None

    @classmethod
    def from_tool_args(cls, kind: str, group: Dict[str, Any]) -> "MergeGroup":
        return cls(
            primary=group.get(f"primary_{kind}") or {},
            to_merge=group.get(f"{kind}s_to_merge") or [],
            justification=group.get("justification"),
        )

    def merge_ids(self) -> List[int]:
        """Distinct merge ids in proposal order, never including the primary."""
        seen = set()
        ids = []
        for ref in self.to_merge:
            if ref.id == self.primary.id or ref.id in seen:
                continue
            seen.add(ref.id)
            ids.append(ref.id)
        return ids
