from __future__ import annotations


class PortariaError(Exception):
    """Base for failures callers can act on.

    ``code`` is the JSON-RPC error code used by the tool endpoint, ``kind`` a
    stable label for agents, ``status_code`` the HTTP status for REST routes.
    """

    code = -32603
    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArguments(PortariaError):
    code = -32602
    kind = "invalid_arguments"
    status_code = 422

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class NotFound(PortariaError):
    code = -32004
    kind = "not_found"
    status_code = 404


class ResidentNotFound(NotFound):
    def __init__(self, apartment_number: str):
        super().__init__(f"No resident found for apartment {apartment_number}")
        self.apartment_number = apartment_number


class ConsentNotFound(NotFound):
    def __init__(self, conversation_sid: str):
        super().__init__("Consent request not found")
        self.conversation_sid = conversation_sid


class NoPendingFound(NotFound):
    def __init__(self, phone: str):
        super().__init__(f"No pending consent found for {phone}")
        self.phone = phone


class PreconditionFailed(PortariaError):
    code = -32009
    kind = "precondition_failed"
    status_code = 409


class ResidentInactive(PreconditionFailed):
    def __init__(self, apartment_number: str):
        super().__init__(f"Resident for apartment {apartment_number} is inactive")
        self.apartment_number = apartment_number


class DuplicateApartment(PreconditionFailed):
    def __init__(self, apartment_number: str):
        super().__init__(f"Apartment {apartment_number} already has a registered resident")
        self.apartment_number = apartment_number


class SendFailed(PortariaError):
    code = -32010
    kind = "send_failed"
    status_code = 502

    def __init__(self, reason: str):
        super().__init__(f"Failed to send WhatsApp message: {reason}")
        self.reason = reason
