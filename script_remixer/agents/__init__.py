from .base import BaseAgent
from .blueprint_architect import BlueprintArchitect
from .scene_writer import SceneWriter
from .script_doctor import ScriptDoctor
from .style_analyst import StyleAnalyst

__all__ = [
    "BaseAgent",
    "BlueprintArchitect",
    "SceneWriter",
    "ScriptDoctor",
    "StyleAnalyst",
]
