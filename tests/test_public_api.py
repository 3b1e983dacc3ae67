from __future__ import annotations

import pytest

from careercrm import board, gmail_client, main, reconcile, scanner, sheets
from careercrm.models import ApplicationRecord


@pytest.mark.parametrize(
    "helper",
    [
        ApplicationRecord.has_email,
        ApplicationRecord.has_contact,
        reconcile.build_contact,
        reconcile.find_by_email,
        reconcile.get_matcher,
        reconcile.get_status_policy,
        gmail_client.decode_part,
        gmail_client.get_email_date,
        board.all_contacts,
        board.render_stats,
        board.render_board,
        board.render_contacts,
        sheets.contact_rows,
        scanner.now_ms,
        main.configured_log_level,
        main.export_quietly,
        main.cmd_setup,
        main.cmd_scan,
        main.cmd_wipe,
        main.build_parser,
    ],
    ids=lambda helper: helper.__qualname__,
)
def test_public_helpers_are_documented(helper) -> None:
    assert helper.__doc__ and helper.__doc__.strip()
