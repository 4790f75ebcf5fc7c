"""lattice: sketch UI layouts and generate framework components with AI."""

from lattice.editor import Editor
from lattice.host import FileWorkspace, HostSession
from lattice.ir import AIConfig, Box, BoxSpec, LatticeProject, Page, ProjectContext
from lattice.llm import AIService, LLMError
from lattice.prompt import PromptPair, assemble_box_prompts, assemble_page_prompts

__version__ = "0.1.0"

__all__ = [
    # IR
    "Box",
    "BoxSpec",
    "Page",
    "ProjectContext",
    "LatticeProject",
    "AIConfig",
    # Prompts
    "PromptPair",
    "assemble_page_prompts",
    "assemble_box_prompts",
    # Editor and host
    "Editor",
    "HostSession",
    "FileWorkspace",
    # AI
    "AIService",
    "LLMError",
]
