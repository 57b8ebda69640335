"""
Conversion options.
"""
from typing import Any, Callable, Mapping, Optional, Union


class WallTimeHelper:
    """
    Converts between the browser's monotonic timestamps and wall-clock epoch
    seconds. The default knows neither direction and returns None; callers that
    have a clock reference (e.g. a captured Runtime.evaluate of Date.now())
    can subclass it, or pass a mapping of the two functions. Only the
    synthetic-entry recovery path uses it.
    """

    # keys of the function mapping accepted by from_functions
    _FUNCTIONS = {
        'getWallTimeFromTimestamp': 'get_wall_time_from_timestamp',
        'getTimestampFromWallTime': 'get_timestamp_from_wall_time',
    }

    def get_wall_time_from_timestamp(self, timestamp: Optional[float]) -> Optional[float]:
        return None

    def get_timestamp_from_wall_time(self, wall_time: Optional[float]) -> Optional[float]:
        return None

    @classmethod
    def from_functions(cls, functions: Mapping[str, Callable[[Optional[float]], Optional[float]]]) -> 'WallTimeHelper':
        """Builds a helper from ``{'getWallTimeFromTimestamp': f, 'getTimestampFromWallTime': g}``."""
        helper = cls()
        for key, function in functions.items():
            attribute = cls._FUNCTIONS.get(key, key)
            if attribute not in cls._FUNCTIONS.values():
                raise ValueError(f"Unknown wall time function: {key}")
            if not callable(function):
                raise ValueError(f"Wall time function {key} is not callable")
            setattr(helper, attribute, function)
        return helper


class HarOptions:
    """Options for one conversion run."""

    # camelCase keys accepted by from_dict, mapped to attribute names
    _KEYS = {
        'includeResourcesFromDiskCache': 'include_resources_from_disk_cache',
        'includeTextFromResponseBody': 'include_text_from_response_body',
        'includeCustomProperties': 'include_custom_properties',
        'name': 'name',
        'version': 'version',
        'comment': 'comment',
        'meta': 'meta',
        'wallTimeHelper': 'wall_time_helper',
    }

    def __init__(self,
                 include_resources_from_disk_cache: bool = False,
                 include_text_from_response_body: bool = False,
                 include_custom_properties: bool = False,
                 name: str = 'harpipe',
                 version: Optional[str] = None,
                 comment: str = '',
                 meta: Any = None,
                 wall_time_helper: Union[WallTimeHelper, Mapping[str, Callable], None] = None):
        if version is None:
            from . import __version__ as version
        self.include_resources_from_disk_cache = include_resources_from_disk_cache
        # reserved for response-body collaborators; the converter never reads bodies
        self.include_text_from_response_body = include_text_from_response_body
        self.include_custom_properties = include_custom_properties
        self.name = name
        self.version = version
        self.comment = comment
        self.meta = meta
        if isinstance(wall_time_helper, Mapping):
            wall_time_helper = WallTimeHelper.from_functions(wall_time_helper)
        self.wall_time_helper = wall_time_helper or WallTimeHelper()

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> 'HarOptions':
        kwargs = {}
        for key, value in values.items():
            attribute = cls._KEYS.get(key, key)
            if attribute not in cls._KEYS.values():
                raise ValueError(f"Unknown option: {key}")
            kwargs[attribute] = value
        return cls(**kwargs)

    @classmethod
    def coerce(cls, options: Union['HarOptions', Mapping[str, Any], None]) -> 'HarOptions':
        if options is None:
            return cls()
        if isinstance(options, HarOptions):
            return options
        return cls.from_dict(options)
