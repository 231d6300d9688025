"""Extension declaration and agent card helpers for A2A x402."""

from typing import List, Optional

from a2a.types import AgentCard, AgentCapabilities

from .types.config import X402_EXTENSION_URI

EXTENSIONS_HEADER = "X-A2A-Extensions"


def get_extension_declaration(
    description: str = "Supports x402 payments",
    required: bool = True,
    networks: Optional[List[str]] = None
) -> dict:
    """Creates extension declaration for AgentCard.

    ``networks``, when given, is advertised under ``params`` so clients can
    tell which chains the agent accepts before asking for a quote.
    """
    declaration = {
        "uri": X402_EXTENSION_URI,
        "description": description,
        "required": required
    }
    if networks:
        declaration["params"] = {"networks": list(networks)}
    return declaration


def check_extension_activation(request_headers: dict) -> bool:
    """Check if x402 extension is activated via HTTP headers."""
    extensions = request_headers.get(EXTENSIONS_HEADER, "")
    return X402_EXTENSION_URI in [e.strip() for e in extensions.split(",")]


def add_extension_activation_header(response_headers: dict) -> dict:
    """Echo extension URI in response header to confirm activation."""
    response_headers[EXTENSIONS_HEADER] = X402_EXTENSION_URI
    return response_headers


def create_x402_agent_card(
    name: str,
    description: str,
    url: str,
    version: str = "1.0.0",
    skills: Optional[List] = None,
    networks: Optional[List[str]] = None,
    default_input_modes: Optional[List[str]] = None,
    default_output_modes: Optional[List[str]] = None,
    streaming: bool = True
) -> AgentCard:
    """Create an AgentCard that declares the x402 extension.

    Args:
        name: Name of the agent
        description: Description of the agent
        url: The URL where this agent can be reached
        version: Agent version
        skills: List of agent skills
        networks: Networks the agent accepts payment on
        default_input_modes: Supported input modes
        default_output_modes: Supported output modes
        streaming: Whether streaming is supported
    """
    capabilities = AgentCapabilities(
        streaming=streaming,
        extensions=[get_extension_declaration(networks=networks)]
    )
    return AgentCard(
        name=name,
        description=description,
        url=url,
        version=version,
        defaultInputModes=default_input_modes or ["text", "text/plain"],
        defaultOutputModes=default_output_modes or ["text", "text/plain"],
        capabilities=capabilities,
        skills=skills or []
    )
