# services/prompts.py
from typing import Dict, List, Optional


EXTRACTION_PROMPT = """You are an expert research assistant analyzing research papers related to AI-assisted software development and GitHub Copilot.

IMPORTANT: Use reference_number: {reference_number} for this paper.

ANALYZE THIS PAPER AND INCLUDE IT if it discusses ANY AI-related software development topics:

DEFINITELY INCLUDE if paper mentions:
- GitHub Copilot, Copilot, AI coding assistants, AI programming tools
- Code completion with AI, AI code generation, automated code writing with AI/ML
- AI in software development, AI for programming, machine learning for code
- Developer productivity with AI tools, AI-enhanced coding efficiency
- LLMs for code, language models in programming, GPT for programming
- AI adoption in software engineering, AI-based programming tools
- Novice programmers using AI coding assistants
- AI-assisted development, machine learning in software engineering
- Code quality with AI, AI-powered testing, AI code review
- Programming education with AI support, AI tutoring for coding

ALSO INCLUDE papers about:
- Any AI/ML system applied to programming or software development
- Large language models used for any coding tasks
- Machine learning for developer productivity or code assistance
- AI tools for software engineering (even if not specifically Copilot)
- Automated programming with AI/ML techniques
- AI-powered IDEs, smart code completion systems
- Machine learning for code analysis, bug detection, or code generation

EXTRACT THEMES AND SUB-THEMES FROM THE PAPER:
Read the paper carefully and identify the main themes and sub-themes that emerge from its content.
Look for the key concepts, topics, and areas of focus that the authors discuss.

Examples of theme categories that might emerge (but don't limit yourself to these):
- AI Tools and Applications
- Developer Productivity and Efficiency
- Code Quality and Security
- Educational Applications
- Human-AI Interaction
- Software Engineering Practices
- Emerging AI Technologies

For sub-themes, identify the specific aspects or components within each main theme that the paper addresses.
Use terminology and concepts that actually appear in the paper, but group them into coherent categories that could accommodate other related papers.

IMPORTANT: For each code you identify, provide a direct quote from the paper that supports it. The quote should be 1-3 sentences that explain, mention, or demonstrate the concept.

REQUIREMENT: Paper must mention AI, ML, LLMs, or intelligent systems in context of programming/software development.
If it does not, answer in plain text and do NOT call insert_paper."""


CONSOLIDATION_PROMPT = """ITERATION {iteration}{chunk_info}: Analyze the following {plural} and identify groups of similar {plural} that should be merged together. Look for:
1. {title} with very similar meanings (e.g., "Software Development" and "Software Engineering")
2. {title} where one is a subset or extension of another (e.g., "Vulnerability" and "Vulnerability Detection")
3. {title} with different wording but same concept (e.g., "Code Quality" and "Software Quality")
4. {title} that are variations of the same core concept
5. {title} that could be logically grouped under a broader category

For each group, choose the most comprehensive and clear {kind} as the primary, and list the others to merge into it.
Write a consolidated description for the primary that covers the meaning of every merged {kind}.
Be aggressive in consolidation - it's better to merge similar concepts than to keep them separate.
Only use IDs from the list below.

{title} to analyze:
{entities}"""


def build_extraction_prompt(reference_number: int, document_text: str = "") -> str:
    prompt = EXTRACTION_PROMPT.format(reference_number=reference_number)
    if document_text:
        prompt = f"{prompt}\n\n{document_text}"
    return prompt


def build_consolidation_prompt(
    kind: str,
    entities: List[Dict],
    iteration: int,
    chunk_number: Optional[int] = None,
) -> str:
    plural = f"{kind}s"
    lines = "\n".join(
        f'ID: {e["id"]}, Name: "{e["name"]}", Description: "{e.get("description") or "No description"}"'
        for e in entities
    )
    return CONSOLIDATION_PROMPT.format(
        iteration=iteration,
        chunk_info=f" - CHUNK {chunk_number}" if chunk_number else "",
        plural=plural,
        title=plural.capitalize(),
        kind=kind,
        entities=lines,
    )
