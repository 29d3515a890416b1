from .base import CamelModel
from .vault import *
from .onchain import *
from .portfolio import *
from .snapshot import *
from .alert import *
from .health import *
