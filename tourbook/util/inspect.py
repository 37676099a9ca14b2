import inspect
from functools import lru_cache
from typing import Callable, Mapping, Tuple


@lru_cache(maxsize=None)
def get_function_defaults(for_func: Callable) -> dict:
    """ Keyword arguments of a function that have defaults: {name: default}

        Settings are routed to handlers by these: a handler accepts a setting
        when its __init__() has a keyword argument with that name.
    """
    return {
        param.name: param.default
        for param in inspect.signature(for_func).parameters.values()
        if param.kind in (param.POSITIONAL_OR_KEYWORD, param.KEYWORD_ONLY)
        and param.default is not param.empty
    }


def pluck_kwargs_from(dct: Mapping, for_func: Callable, skip: Tuple[str] = ()) -> dict:
    """ Take the kwargs `for_func` accepts from `dct`; missing ones get their defaults

        pluck_kwargs_from({'max_items': 10, 'junk': 1}, LimitHandler.__init__)
        # -> {'max_items': 10}
    """
    return {name: dct[name] if name in dct else default
            for name, default in get_function_defaults(for_func).items()
            if name not in skip}
