"""
### Query string parsing

Parses a URL query string into the parameters that `APIFeatures` understands:

```python
parse_query_string('duration[gte]=5&difficulty=easy&sort=price&sort=-name')
# -> {'duration': {'gte': '5'}, 'difficulty': 'easy', 'sort': '-name'}
```

* `key=value` pairs are URL-decoded; a key that has no value gets an empty string
* Bracket notation, one level deep: `price[gte]=100` -> `{'price': {'gte': '100'}}`; `a[]=1` -> `{'a': ['1']}`
* Repeated keys are grouped into lists: `difficulty=easy&difficulty=medium` -> `{'difficulty': ['easy', 'medium']}`

HTTP Parameter Pollution protection: a repeated key collapses into its last value,
unless it's whitelisted. Whitelisted keys keep all of their values, and become `$in` filters.
"""

import re
from typing import Iterable, Mapping, Tuple, Union
from urllib.parse import parse_qsl


#: Parameters that can legitimately be repeated
DEFAULT_HPP_WHITELIST = (
    'duration',
    'ratings_quantity',
    'ratings_average',
    'max_group_size',
    'difficulty',
    'price',
)

_bracket_key = re.compile(r'^([^\[\]]+)\[([^\[\]]*)\]$')


def parse_query_string(qs: Union[str, bytes], whitelist: Iterable[str] = DEFAULT_HPP_WHITELIST) -> dict:
    """ Parse a URL query string

    :param qs: The query string, without the leading '?'
    :param whitelist: Keys that are allowed to have multiple values
    """
    if isinstance(qs, bytes):
        qs = qs.decode('utf-8', errors='replace')
    return parse_query_params(parse_qsl(qs, keep_blank_values=True), whitelist)


def parse_query_params(pairs: Union[Iterable[Tuple[str, str]], Mapping],
                       whitelist: Iterable[str] = DEFAULT_HPP_WHITELIST) -> dict:
    """ Build the parameters from decoded (key, value) pairs

    Use it with a werkzeug MultiDict like this:

        parse_query_params(request.args.items(multi=True))

    :param pairs: Decoded (key, value) pairs, in the order they came in, or a mapping
    :param whitelist: Keys that are allowed to have multiple values
    """
    if isinstance(pairs, Mapping):
        pairs = pairs.items()

    params = {}
    for key, value in pairs:
        m = _bracket_key.match(key)
        if not m:
            _add_value(params, key, value)
            continue

        name, sub_key = m.groups()
        if sub_key == '':
            # a[]=1: always a list
            values = params.get(name)
            if not isinstance(values, list):
                params[name] = values = [] if values is None or isinstance(values, dict) else [values]
            values.append(value)
        else:
            # a[b]=1: a mapping; it replaces a plain value given before
            sub_params = params.get(name)
            if not isinstance(sub_params, dict):
                params[name] = sub_params = {}
            _add_value(sub_params, sub_key, value)

    return prevent_parameter_pollution(params, whitelist)


def parse_params(params, whitelist: Iterable[str] = DEFAULT_HPP_WHITELIST) -> dict:
    """ Get query parameters from whatever the request has: a query string, a werkzeug MultiDict, or a dict

        A dict is taken as already parsed, and is only copied.
    """
    if params is None:
        return {}
    if isinstance(params, (str, bytes)):
        return parse_query_string(params, whitelist)
    if hasattr(params, 'getlist'):
        # werkzeug MultiDict
        return parse_query_params(params.items(multi=True), whitelist)
    return dict(params)


def prevent_parameter_pollution(params: dict, whitelist: Iterable[str] = DEFAULT_HPP_WHITELIST) -> dict:
    """ Collapse lists of values into the last value, except for whitelisted keys

        Operator values (`price[gte]=1&price[gte]=2`) always collapse: a comparison takes one value.
    """
    whitelist = frozenset(whitelist)
    return {key: value if key in whitelist and not isinstance(value, dict) else _last_value(value)
            for key, value in params.items()}


def _add_value(dct: dict, key: str, value):
    """ Set a value; a repeated key becomes a list of values """
    if key not in dct:
        dct[key] = value
    elif isinstance(dct[key], list):
        dct[key].append(value)
    else:
        dct[key] = [dct[key], value]


def _last_value(value):
    if isinstance(value, list):
        return value[-1] if value else ''
    if isinstance(value, dict):
        return {k: _last_value(v) for k, v in value.items()}
    return value
