from .common import *  # noqa
from .catalog import *  # noqa
