import signal
from datetime import date

import pytest

from invoice_seeder import SeedSummary
from seed_cli import build_parser, execute, parse_args, report, window_from_args
from seed_errors import ConfigurationError, LoadError


@pytest.fixture
def parser(monkeypatch):
    monkeypatch.delenv('SEED_BATCH_SIZE', raising=False)
    monkeypatch.delenv('SEED_TABLE', raising=False)
    return build_parser('test seeder')


def test_defaults(parser):
    args = parse_args(parser, ['25000'])
    assert args.count == 25000
    assert args.batch_size == 10000
    assert args.seed is None
    assert not args.fresh
    assert args.table == 'invoices'
    window = window_from_args(args)
    assert (window.start, window.end) == (date(2021, 1, 1), date(2024, 6, 16))


def test_batch_size_from_environment(monkeypatch):
    monkeypatch.setenv('SEED_BATCH_SIZE', '500')
    args = parse_args(build_parser('test seeder'), ['1'])
    assert args.batch_size == 500


def test_table_from_environment(monkeypatch):
    monkeypatch.setenv('SEED_TABLE', 'invoices_staging')
    args = parse_args(build_parser('test seeder'), ['1'])
    assert args.table == 'invoices_staging'


def test_table_flag_overrides_environment(monkeypatch):
    monkeypatch.setenv('SEED_TABLE', 'invoices_staging')
    args = parse_args(build_parser('test seeder'), ['1', '--table', 'invoices_2024'])
    assert args.table == 'invoices_2024'


@pytest.mark.parametrize('argv', [
    [],
    ['ten'],
    ['-3'],
    ['10', '--batch-size', '0'],
    ['10', '--start-date', '2024-13-01'],
    ['10', '--start-date', '2024-02-01', '--end-date', '2024-01-01'],
    ['10', '--table', 'bad;name'],
    ['10', '--table', 'invoices staging'],
])
def test_bad_arguments_exit_with_usage_error(parser, argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        parse_args(parser, argv)
    assert excinfo.value.code == 2
    assert capsys.readouterr().err


def test_explicit_window(parser):
    args = parse_args(parser, ['1', '--start-date', '2024-01-01', '--end-date', '2024-01-31'])
    window = window_from_args(args)
    assert window.days == 30


def test_execute_maps_seed_errors_to_exit_status():
    def failing(cancel):
        raise LoadError('connection refused', inserted=20000)

    assert execute(failing) == 1


def test_execute_maps_configuration_errors_to_exit_status():
    def failing(cancel):
        raise ConfigurationError('bad window')

    assert execute(failing) == 1


def test_execute_hands_over_a_cancel_event_and_restores_sigint(capsys):
    previous = signal.getsignal(signal.SIGINT)
    seen = {}

    def seed(cancel):
        seen['cancel'] = cancel
        assert signal.getsignal(signal.SIGINT) is not previous
        return SeedSummary(inserted=3, elapsed=0.5, flushes=1)

    assert execute(seed) == 0
    assert not seen['cancel'].is_set()
    assert signal.getsignal(signal.SIGINT) is previous
    assert 'Inserted 3 invoices in: 0.50s' in capsys.readouterr().out


def test_cancelled_run_has_its_own_exit_status():
    assert execute(lambda cancel: SeedSummary(10, 1.0, 1, cancelled=True)) == 130


def test_report_for_cancelled_run(capsys):
    report(SeedSummary(inserted=10, elapsed=2.0, flushes=1, cancelled=True))
    assert capsys.readouterr().out.startswith('Cancelled: inserted 10 invoices')


def test_rate_of_instant_run_is_zero():
    assert SeedSummary(inserted=10, elapsed=0.0).rate == 0.0
