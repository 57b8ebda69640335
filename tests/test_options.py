import logging

import pytest

from harpipe import __version__
from harpipe.events import EventMethod, IgnoredEvents, is_supported_family
from harpipe.options import HarOptions, WallTimeHelper


def test_defaults():
    options = HarOptions()
    assert options.include_resources_from_disk_cache is False
    assert options.include_custom_properties is False
    assert options.name == 'harpipe'
    assert options.version == __version__
    assert options.meta is None
    assert isinstance(options.wall_time_helper, WallTimeHelper)


def test_from_dict_accepts_camel_and_snake_case():
    options = HarOptions.from_dict({
        'includeResourcesFromDiskCache': True,
        'include_custom_properties': True,
        'name': 'recorder',
        'version': '9.9',
        'meta': {'run': 3},
    })
    assert options.include_resources_from_disk_cache is True
    assert options.include_custom_properties is True
    assert options.name == 'recorder'
    assert options.version == '9.9'
    assert options.meta == {'run': 3}


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ValueError, match='includeEverything'):
        HarOptions.from_dict({'includeEverything': True})


def test_coerce():
    options = HarOptions(comment='x')
    assert HarOptions.coerce(options) is options
    assert HarOptions.coerce(None).comment == ''
    assert HarOptions.coerce({'comment': 'y'}).comment == 'y'


def test_wall_time_helper_from_function_mapping():
    options = HarOptions.from_dict({'wallTimeHelper': {
        'getWallTimeFromTimestamp': lambda timestamp: timestamp + 1000,
        'get_timestamp_from_wall_time': lambda wall_time: wall_time - 1000,
    }})
    helper = options.wall_time_helper
    assert isinstance(helper, WallTimeHelper)
    assert helper.get_wall_time_from_timestamp(5.0) == 1005.0
    assert helper.get_timestamp_from_wall_time(1005.0) == 5.0


def test_wall_time_helper_mapping_may_omit_a_function():
    helper = WallTimeHelper.from_functions({'getWallTimeFromTimestamp': lambda timestamp: 1.0})
    assert helper.get_wall_time_from_timestamp(0) == 1.0
    assert helper.get_timestamp_from_wall_time(1.0) is None


@pytest.mark.parametrize('functions', [
    {'getWallTime': lambda timestamp: 1.0},
    {'getWallTimeFromTimestamp': 1.0},
])
def test_wall_time_helper_rejects_bad_mapping(functions):
    with pytest.raises(ValueError):
        HarOptions(wall_time_helper=functions)


def test_default_wall_time_helper_knows_nothing():
    helper = WallTimeHelper()
    assert helper.get_wall_time_from_timestamp(100.0) is None
    assert helper.get_timestamp_from_wall_time(1600000000.0) is None


def test_event_method_parse():
    assert EventMethod.parse('Network.loadingFinished') is EventMethod.LOADING_FINISHED
    assert EventMethod.parse('Network.loadingFinished') == 'Network.loadingFinished'
    assert EventMethod.parse('Runtime.consoleAPICalled') is None
    assert EventMethod.parse(None) is None


def test_is_supported_family():
    assert is_supported_family('Page.lifecycleEvent')
    assert is_supported_family('Network.webSocketCreated')
    assert not is_supported_family('Runtime.consoleAPICalled')
    assert not is_supported_family(None)


def test_ignored_events_report_each_method_once(caplog):
    ignored = IgnoredEvents()
    with caplog.at_level(logging.DEBUG, logger='harpipe.events'):
        ignored.report('Network.someNewEvent')
        ignored.report('Network.someNewEvent')
        ignored.report('Runtime.executionContextCreated')
        ignored.report('Page.lifecycleEvent')

    assert ignored.reported == {'Network.someNewEvent', 'Runtime.executionContextCreated'}
    messages = [record.getMessage() for record in caplog.records]
    assert messages.count('Unhandled event: Network.someNewEvent') == 1
    assert 'Skipping event outside the Page/Network domains: Runtime.executionContextCreated' in messages
    assert not any('lifecycleEvent' in message for message in messages)
