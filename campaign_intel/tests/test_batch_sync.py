"""
Tests for the Batch Sync Job.

Covers per-credential isolation, token decryption and refresh handling,
and how account-level pipeline results roll up into a SyncOutcome.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from campaign_intel.jobs.batch_sync import BatchSyncRunner, account_result, run_batch_sync
from campaign_intel.models.enums import SyncOutcome
from campaign_intel.models.schemas import Credential, LinkedAccount, PipelineState, TestReport, WriteStatus
from campaign_intel.sql import get_schema_statements
from campaign_intel.tests.conftest import ACCOUNT_ID, NOW, auth_error


@pytest.fixture
def runner_for(client_factory, vault):
    def build(store, settings):
        return BatchSyncRunner(
            store,
            settings,
            client_factory=client_factory,
            vault=vault,
            clock=lambda: NOW,
        )
    return build


def _add_second_account(store, account_id='act_1002'):
    store.add_account(LinkedAccount(account_id=account_id, name='Second', token_id='cred-1', is_active=True))


class TestRunAll:

    @pytest.mark.asyncio
    async def test_healthy_credential_is_synced(self, runner_for, seeded_store, settings, graph_stub, sample_payloads):
        graph_stub.insight_pages = [sample_payloads]

        results = await runner_for(seeded_store, settings).run_all()

        assert len(results) == 1
        result = results[0]
        assert result.credential_id == 'cred-1'
        assert result.user_id == 'user-1'
        assert result.outcome == SyncOutcome.SYNCED
        assert result.refreshed is False
        assert [a.account_id for a in result.accounts] == [ACCOUNT_ID]
        assert result.accounts[0].success is True
        assert result.accounts[0].inserted_count == 3
        assert result.accounts[0].integrity_valid is True
        assert set(graph_stub.tokens()) == {'user-token'}
        assert len(seeded_store.insights) == 3

    @pytest.mark.asyncio
    async def test_invalid_credentials_are_not_listed(self, runner_for, seeded_store, settings):
        seeded_store.credentials['cred-1'] = seeded_store.credentials['cred-1'].model_copy(update={'is_valid': False})

        assert await runner_for(seeded_store, settings).run_all() == []

    @pytest.mark.asyncio
    async def test_no_active_accounts(self, runner_for, seeded_store, settings, graph_stub):
        seeded_store.accounts.clear()

        results = await runner_for(seeded_store, settings).run_all()

        assert results[0].outcome == SyncOutcome.NO_ACCOUNTS
        assert graph_stub.requests == []

    @pytest.mark.asyncio
    async def test_one_bad_credential_does_not_stop_the_next(
        self, runner_for, seeded_store, settings, vault, graph_stub, sample_payloads
    ):
        seeded_store.credentials.clear()
        seeded_store.add_credential(Credential(id='cred-0', user_id='user-0', encrypted_access_token='garbage'))
        seeded_store.add_credential(Credential(
            id='cred-1',
            user_id='user-1',
            encrypted_access_token=vault.encrypt('user-token'),
            expires_at=NOW + timedelta(days=50),
        ))
        graph_stub.insight_pages = [sample_payloads]

        results = await runner_for(seeded_store, settings).run_all()

        assert [r.outcome for r in results] == [SyncOutcome.DECRYPT_FAILED, SyncOutcome.SYNCED]
        assert seeded_store.invalidated == ['cred-0']
        assert seeded_store.credentials['cred-0'].is_valid is False

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_recorded_as_error(self, runner_for, seeded_store, settings):
        seeded_store.list_active_accounts = AsyncMock(side_effect=RuntimeError('connection reset'))

        results = await runner_for(seeded_store, settings).run_all()

        assert results[0].outcome == SyncOutcome.ERROR
        assert results[0].error == 'connection reset'


class TestTokenHandling:

    @pytest.mark.asyncio
    async def test_undecryptable_token_invalidates_credential(self, runner_for, seeded_store, settings, graph_stub):
        seeded_store.credentials['cred-1'] = seeded_store.credentials['cred-1'].model_copy(
            update={'encrypted_access_token': 'zz:zz'}
        )

        result = (await runner_for(seeded_store, settings).run_all())[0]

        assert result.outcome == SyncOutcome.DECRYPT_FAILED
        assert result.error == 'Stored token is not valid hex'
        assert seeded_store.invalidated == ['cred-1']
        assert graph_stub.requests == []

    @pytest.mark.asyncio
    async def test_expiring_token_is_refreshed_before_sync(
        self, runner_for, seeded_store, refresh_settings, graph_stub, vault, sample_payloads
    ):
        seeded_store.credentials['cred-1'] = seeded_store.credentials['cred-1'].model_copy(
            update={'expires_at': NOW + timedelta(days=3)}
        )
        graph_stub.insight_pages = [sample_payloads]

        result = (await runner_for(seeded_store, refresh_settings).run_all())[0]

        assert result.outcome == SyncOutcome.SYNCED
        assert result.refreshed is True

        saved = seeded_store.refreshed[0]
        assert saved['credential_id'] == 'cred-1'
        assert saved['expires_at'] == NOW + timedelta(seconds=5184000)
        assert vault.decrypt(saved['encrypted_access_token']) == 'refreshed-token'

        exchange = graph_stub.requests[0]
        assert exchange.url.path.endswith('/oauth/access_token')
        assert exchange.url.params['grant_type'] == 'fb_exchange_token'
        assert exchange.url.params['client_id'] == 'app-123'
        assert exchange.url.params['fb_exchange_token'] == 'user-token'
        # the pipeline runs with the new token
        assert set(graph_stub.tokens()[1:]) == {'refreshed-token'}

    @pytest.mark.asyncio
    async def test_token_outside_window_is_not_refreshed(self, runner_for, seeded_store, refresh_settings, graph_stub):
        result = (await runner_for(seeded_store, refresh_settings).run_all())[0]

        assert result.refreshed is False
        assert seeded_store.refreshed == []
        assert not any(path.endswith('/oauth/access_token') for path in graph_stub.paths())

    @pytest.mark.asyncio
    async def test_refresh_without_app_credentials_fails(self, runner_for, seeded_store, settings, graph_stub):
        seeded_store.credentials['cred-1'] = seeded_store.credentials['cred-1'].model_copy(
            update={'expires_at': NOW - timedelta(days=1)}
        )

        result = (await runner_for(seeded_store, settings).run_all())[0]

        assert result.outcome == SyncOutcome.REFRESH_FAILED
        assert result.error == 'App credentials are not configured for token refresh'
        assert result.accounts == []
        assert seeded_store.invalidated == ['cred-1']
        assert graph_stub.requests == []

    @pytest.mark.asyncio
    async def test_rejected_exchange_fails_refresh(self, runner_for, seeded_store, refresh_settings, graph_stub):
        seeded_store.credentials['cred-1'] = seeded_store.credentials['cred-1'].model_copy(
            update={'expires_at': NOW + timedelta(days=1)}
        )
        graph_stub.errors['/oauth/access_token'] = (400, auth_error('Error validating access token: expired'))

        result = (await runner_for(seeded_store, refresh_settings).run_all())[0]

        assert result.outcome == SyncOutcome.REFRESH_FAILED
        assert seeded_store.invalidated == ['cred-1']
        assert seeded_store.refreshed == []
        assert graph_stub.paths() == ['/v18.0/oauth/access_token']


class TestAccountOutcomes:

    @pytest.mark.asyncio
    async def test_auth_failure_stops_remaining_accounts(self, runner_for, seeded_store, settings, graph_stub):
        _add_second_account(seeded_store)
        graph_stub.errors[f'/v18.0/{ACCOUNT_ID}'] = (400, auth_error())

        result = (await runner_for(seeded_store, settings).run_all())[0]

        assert result.outcome == SyncOutcome.AUTH_FAILED
        assert [a.account_id for a in result.accounts] == [ACCOUNT_ID]
        assert result.error.startswith('Account Metadata: Error validating access token')
        assert seeded_store.invalidated == ['cred-1']
        assert not any('act_1002' in path for path in graph_stub.paths())

    @pytest.mark.asyncio
    async def test_failed_account_makes_credential_partial(
        self, runner_for, seeded_store, settings, graph_stub, sample_payloads
    ):
        _add_second_account(seeded_store)
        graph_stub.insight_pages = [sample_payloads]
        graph_stub.errors['/v18.0/act_1002/insights'] = (500, {'message': 'An unknown error occurred', 'code': 1})

        result = (await runner_for(seeded_store, settings).run_all())[0]

        assert result.outcome == SyncOutcome.PARTIAL
        assert [(a.account_id, a.success) for a in result.accounts] == [(ACCOUNT_ID, True), ('act_1002', False)]
        assert result.accounts[1].errors == ['Ingestion: An unknown error occurred']
        assert seeded_store.invalidated == []


class TestAccountResult:

    def test_successful_state(self):
        state = PipelineState(
            write_status=WriteStatus(success=True, inserted_count=12),
            test_report=TestReport(valid=True, checks=[]),
        )

        result = account_result(ACCOUNT_ID, state)

        assert result.success is True
        assert result.inserted_count == 12
        assert result.integrity_valid is True

    def test_state_with_errors(self):
        state = PipelineState()
        state.status.errors.append('Ingestion: boom')

        result = account_result(ACCOUNT_ID, state)

        assert result.success is False
        assert result.inserted_count == 0
        assert result.integrity_valid is None
        assert result.errors == ['Ingestion: boom']


class TestRunBatchSync:

    @pytest.mark.asyncio
    async def test_schema_is_created_before_syncing(self, monkeypatch, mock_db_pool, settings):
        close = AsyncMock()
        monkeypatch.setattr('campaign_intel.jobs.batch_sync.get_db_pool', AsyncMock(return_value=mock_db_pool))
        monkeypatch.setattr('campaign_intel.jobs.batch_sync.close_db', close)

        assert await run_batch_sync(settings) == []

        executed = [call.args[0] for call in mock_db_pool.conn.execute.call_args_list]
        assert executed == get_schema_statements()
        close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_schema_creation_can_be_disabled(self, monkeypatch, mock_db_pool, settings):
        monkeypatch.setattr('campaign_intel.jobs.batch_sync.get_db_pool', AsyncMock(return_value=mock_db_pool))
        monkeypatch.setattr('campaign_intel.jobs.batch_sync.close_db', AsyncMock())

        await run_batch_sync(settings.model_copy(update={'auto_create_schema': False}))

        mock_db_pool.conn.execute.assert_not_called()
