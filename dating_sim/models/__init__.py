# dating_sim/models/__init__.py

from dating_sim.database import Base

from .user import User
from .characters import Character
from .game_state import GameState
from .dialogue import Dialogue
from .save_slot import SaveSlot
