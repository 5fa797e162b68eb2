# tests/fakes.py
from services.schemas import ExtractionRecord


class FakeOracle:
    """
    Stands in for SemanticOracle. `responder` is either a list of canned
    answers (consumed in order, then None) or a callable(prompt, tool) -> answer.
    An answer that is an Exception instance is raised.
    """

    def __init__(self, responder=None):
        self.responder = responder if responder is not None else []
        self.calls = []
        self.closed = False

    def invoke(self, instructions, tool, document=None, model=None):
        self.calls.append({
            "instructions": instructions,
            "tool": tool["function"]["name"],
            "document": document,
            "model": model,
        })
        if callable(self.responder):
            answer = self.responder(instructions, tool)
        elif self.responder:
            answer = self.responder.pop(0)
        else:
            answer = None
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self):
        self.closed = True


def make_record(title="P1", reference_number=1, themes=None, **extra) -> ExtractionRecord:
    if themes is None:
        themes = [{
            "name": "T1",
            "description": "d",
            "subthemes": [{
                "name": "S1",
                "description": "d2",
                "codes": [{"name": "copilot", "quote": "q1"}],
            }],
        }]
    return ExtractionRecord.model_validate({
        "paper_title": title,
        "authors": "A",
        "themes": themes,
        "reference_number": reference_number,
        **extra,
    })
