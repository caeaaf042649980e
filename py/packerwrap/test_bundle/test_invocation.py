"""Tests for assemble_invocation token ordering.

Token order is part of the contract, so every test compares full
sequences rather than membership.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from packerwrap import (
    BuildOptions,
    ConfigError,
    assemble_invocation,
    format_invocation,
    option_tokens,
)


def test_debug_and_single_var():
    options = BuildOptions.builder().debug().var('region', 'us-west-2').build()

    tokens = assemble_invocation('build', options, ['template.pkr.hcl'])

    assert tokens == ['build', '--debug', '-var=region=us-west-2', 'template.pkr.hcl']


def test_no_options_emits_no_flags():
    assert assemble_invocation('build', None, ['t.pkr.hcl']) == ['build', 't.pkr.hcl']
    assert assemble_invocation('build', BuildOptions.default(), ['t.pkr.hcl']) == [
        'build', 't.pkr.hcl'
    ]


def test_false_booleans_emit_nothing():
    options = BuildOptions.builder().debug(False).force(False).timestamp_ui(False).build()
    assert option_tokens(options) == []


def test_full_ordering():
    options = (
        BuildOptions.builder()
        .on_error('abort')
        .parallel_builds(4)
        .var('b', '2')
        .var_file('one.pkrvars.hcl')
        .timestamp_ui()
        .var('a', '1')
        .force()
        .var_file(Path('two.pkrvars.hcl'))
        .debug()
        .color(False)
        .build()
    )

    tokens = assemble_invocation('build', options, [Path('images/base.pkr.hcl')])

    assert tokens == [
        'build',
        '--debug',
        '--force',
        '--timestamp-ui',
        '-var-file=one.pkrvars.hcl',
        '-var-file=two.pkrvars.hcl',
        '-var=b=2',
        '-var=a=1',
        '-parallel-builds=4',
        '-on-error=abort',
        '-color=false',
        str(Path('images/base.pkr.hcl')),
    ]


def test_color_true_emits_nothing():
    options = BuildOptions.builder().color(True).build()
    assert option_tokens(options) == []


def test_positionals_always_last():
    options = BuildOptions.builder().force().var('k', 'v').build()

    tokens = assemble_invocation('build', options, ['first', 'second'])

    assert tokens[-2:] == ['first', 'second']
    assert tokens[0] == 'build'


def test_duplicate_vars_are_kept_in_order():
    options = BuildOptions.builder().var('k', '1').var('k', '2').build()
    assert option_tokens(options) == ['-var=k=1', '-var=k=2']


def test_multi_token_subcommand():
    tokens = assemble_invocation(('plugins', 'install'), None, ['github.com/hashicorp/amazon'])
    assert tokens == ['plugins', 'install', 'github.com/hashicorp/amazon']


def test_value_with_spaces_is_a_single_token():
    options = BuildOptions.builder().var('name', 'my image').build()
    assert assemble_invocation('build', options, ['t.pkr.hcl']) == [
        'build', '-var=name=my image', 't.pkr.hcl'
    ]


@pytest.mark.parametrize("subcommand", ['', [], ['plugins', '']])
def test_empty_subcommand_rejected(subcommand):
    with pytest.raises(ConfigError) as exc_info:
        assemble_invocation(subcommand)
    assert exc_info.value.field == 'subcommand'


def test_assembly_is_deterministic():
    options = BuildOptions.builder().debug().var('a', '1').var_file('f.hcl').build()
    first = assemble_invocation('build', options, ['t.pkr.hcl'])
    second = assemble_invocation('build', options, ['t.pkr.hcl'])
    assert first == second


def test_format_invocation_quotes_tokens():
    text = format_invocation(['packer', 'build', '-var=name=my image', 't.pkr.hcl'])
    assert text == "packer build '-var=name=my image' t.pkr.hcl"


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
