from .modules import module_to_path, path_to_module
from .walk import find_file, iter_matches

__all__ = ["find_file", "iter_matches", "module_to_path", "path_to_module"]
