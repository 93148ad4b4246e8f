import importlib
import pkgutil
from pathlib import Path

from .transport import Transport, TransportRegistry

Transports: TransportRegistry = TransportRegistry()

package_dir = Path(__file__).parent

# Import all modules in this package so that their transports get registered
for module_info in pkgutil.iter_modules([str(package_dir)]):
    if module_info.name not in ["__init__", "transport"]:
        importlib.import_module(f".{module_info.name}", package=__name__)
