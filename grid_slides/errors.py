"""
Error types raised by the grid slide pipeline.

Every error carries an optional corrective ``suggestion`` and an error
``code`` so that the CLI can print a helpful message without having to know
which stage of the pipeline failed.
"""
from typing import Optional


class GridSlidesError(Exception):
    """Base class for all errors raised by grid_slides."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        suggestion: Optional[str] = None,
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.suggestion = suggestion
        self.file_path = file_path
        self.line_number = line_number

    def __str__(self):
        output = self.message

        if self.file_path:
            output += f"\nFile: {self.file_path}"
            if self.line_number:
                output += f":{self.line_number}"

        if self.suggestion:
            output += f"\nSuggestion: {self.suggestion}"

        if self.code:
            output += f"\nError Code: {self.code}"

        return output


class GridError(GridSlidesError):
    """
    Invalid or unsatisfiable grid position.

    Carries the offending position (if any) and the grid bounds it was
    checked against.
    """

    def __init__(self, message: str, position=None, grid=None, suggestion: Optional[str] = None,
                 file_path: Optional[str] = None, line_number: Optional[int] = None):
        pos_str = f" at position {position}" if position is not None else ""
        super().__init__(f"Grid error{pos_str}: {message}", "GRID_ERROR", suggestion, file_path, line_number)
        self.position = position
        self.grid = grid


class AliasCycleError(GridError):
    """An alias table entry resolves back to itself."""

    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__(
            f"Alias cycle detected: {' -> '.join(self.chain)}",
            suggestion="Make every alias resolve to a grid reference such as [1-12, 1]",
        )


class ParseError(GridSlidesError):
    """Markdown or front matter could not be interpreted."""

    def __init__(self, message: str, element: Optional[str] = None, suggestion: Optional[str] = None,
                 file_path: Optional[str] = None, line_number: Optional[int] = None):
        element_str = f" in {element}" if element else ""
        super().__init__(f"Parse error{element_str}: {message}", "PARSE_ERROR", suggestion, file_path, line_number)


class GenerationError(GridSlidesError):
    """The presentation file could not be produced."""

    def __init__(self, message: str, element_type: Optional[str] = None, suggestion: Optional[str] = None,
                 file_path: Optional[str] = None, line_number: Optional[int] = None):
        type_str = f" for {element_type}" if element_type else ""
        super().__init__(f"Generation error{type_str}: {message}", "GENERATION_ERROR", suggestion,
                         file_path, line_number)


class ContentTypeError(GridSlidesError, TypeError):
    """An element payload was accessed as the wrong content kind."""

    def __init__(self, element_type: str, expected: str):
        super().__init__(
            f"Element of type '{element_type}' does not carry {expected} content",
            "CONTENT_TYPE_ERROR",
        )
        self.element_type = element_type
        self.expected = expected
