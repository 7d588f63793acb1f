from typing import Any, Dict, Optional


class ConverterError(RuntimeError):
    """Base for every failure reported back to the client as `{error, details}`."""

    status_code = 500
    default_message = "An error occurred during conversion."

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InputValidationError(ConverterError):
    status_code = 400
    default_message = "A MIDI file is required."


class ToolUnavailableError(ConverterError):
    default_message = "MuseScore is not installed."


class ToolNotFoundAtRuntime(ConverterError):
    default_message = "The MuseScore executable could not be found."


class ConversionTimeoutError(ConverterError):
    default_message = "Conversion timed out."


class MalformedInputError(ConverterError):
    default_message = "The MIDI file could not be read."


class ConversionError(ConverterError):
    ...


class GenerationFailureError(ConverterError):
    default_message = "The MusicXML file was not generated."


class ReadError(ConverterError):
    default_message = "The result file could not be read."


class InternalError(ConverterError):
    default_message = "Internal server error."
