from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portaria.consent import ConsentLifecycle, snapshot
from portaria.directory import ResidentDirectory
from portaria.errors import InvalidArguments, PortariaError


class UnknownTool(PortariaError):
    code = -32601
    kind = "unknown_tool"
    status_code = 404

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


@dataclass
class ToolContext:
    directory: ResidentDirectory
    lifecycle: ConsentLifecycle


# At least one non-whitespace character.
NOT_BLANK = r"\S"


class ToolArguments(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PhoneByApartmentArgs(ToolArguments):
    apartment_number: str = Field(
        alias="apartmentNumber",
        min_length=1,
        pattern=NOT_BLANK,
        description="The apartment number (e.g., '1507', '23B')",
    )


class StartConsentArgs(ToolArguments):
    to: str = Field(
        min_length=1,
        pattern=NOT_BLANK,
        description="Phone number with country code (e.g., +5511999999999)",
    )
    apt: str = Field(min_length=1, pattern=NOT_BLANK, description="Apartment number")
    visitor: str = Field(min_length=1, pattern=NOT_BLANK, description="Visitor name")
    company: str = Field(min_length=1, pattern=NOT_BLANK, description="Company/delivery name")
    ttl: int = Field(
        default=300,
        gt=0,
        strict=True,
        description="Time to live in seconds (default: 300)",
    )


class ConsentStatusArgs(ToolArguments):
    conversation_sid: str = Field(
        alias="conversationSid",
        min_length=1,
        description="The conversation SID returned from start_whatsapp_consent",
    )


def get_phone_by_apartment(context: ToolContext, args: PhoneByApartmentArgs) -> dict[str, Any]:
    resident = context.directory.lookup(args.apartment_number)
    return {
        "apartmentNumber": resident.apartment_number,
        "phoneNumber": resident.phone_number,
        "residentName": resident.resident_name,
        "message": "Resident information retrieved successfully",
    }


def start_whatsapp_consent(context: ToolContext, args: StartConsentArgs) -> dict[str, Any]:
    started = context.lifecycle.start(
        to=args.to,
        apt=args.apt,
        visitor=args.visitor,
        company=args.company,
        ttl_seconds=args.ttl,
    )
    return {
        "conversationSid": started.conversation_sid,
        "status": started.status.value,
        "message": "WhatsApp consent request sent successfully",
    }


def get_consent_status(context: ToolContext, args: ConsentStatusArgs) -> dict[str, Any]:
    return snapshot(context.lifecycle.get_status(args.conversation_sid))


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    arguments: type[ToolArguments]
    handler: Callable[[ToolContext, Any], dict[str, Any]]

    def input_schema(self) -> dict[str, Any]:
        schema = self.arguments.model_json_schema(by_alias=True)
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return schema

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


TOOLS: dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool(
            name="get_phone_by_apartment",
            description=(
                "Gets the resident's phone number for a given apartment number. "
                "Use this BEFORE sending a consent request if you only know the apartment number."
            ),
            arguments=PhoneByApartmentArgs,
            handler=get_phone_by_apartment,
        ),
        Tool(
            name="start_whatsapp_consent",
            description=(
                "Initiates a WhatsApp consent request for a visitor arrival. Sends a message "
                "to the resident with approve/deny buttons. Returns a conversation SID to "
                "track the request."
            ),
            arguments=StartConsentArgs,
            handler=start_whatsapp_consent,
        ),
        Tool(
            name="get_consent_status",
            description=(
                "Retrieves the current status of a WhatsApp consent request. "
                "Returns: pending, approved, denied, no_answer, or failed."
            ),
            arguments=ConsentStatusArgs,
            handler=get_consent_status,
        ),
    )
}


def list_tools() -> list[dict[str, Any]]:
    return [tool.describe() for tool in TOOLS.values()]


def validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "arguments"
        parts.append(f"{location}: {error['msg']}")
    return "Invalid arguments: " + "; ".join(parts)


def call_tool(name: str, arguments: dict[str, Any] | None, context: ToolContext) -> dict[str, Any]:
    tool = TOOLS.get(name)
    if not tool:
        raise UnknownTool(name)
    try:
        args = tool.arguments.model_validate(arguments or {})
    except ValidationError as exc:
        raise InvalidArguments(
            validation_message(exc),
            errors=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc
    return tool.handler(context, args)
