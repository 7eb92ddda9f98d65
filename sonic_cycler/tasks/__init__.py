from .base import BaseCycleModule, CycleStep
from .lending import LendingCycleModule
from .swap import SwapCycleModule
