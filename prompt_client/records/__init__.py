import importlib
import pkgutil
from pathlib import Path

from .store import RecordStore, RecordStoreRegistry

RecordStores: RecordStoreRegistry = RecordStoreRegistry()

package_dir = Path(__file__).parent

for module_info in pkgutil.iter_modules([str(package_dir)]):
    if module_info.name not in ["__init__", "store"]:
        importlib.import_module(f".{module_info.name}", package=__name__)
