import asyncio
import json

import pytest
import requests

from neurolink.engine.transport import HttpRoundApi, TransportError
from neurolink.rules import Tier

ROUND = {
    'targetShape': 'circle',
    'satShape': 'square',
    'satColorIdx': 1,
    'satDirIdx': 3,
    'targetColorIdx': 0,
    'sat2Shape': 'cross',
    'sat2DirIdx': 6,
    'targetSolid': False,
    'sessionSalt': 'a1b2c3',
}


def _response(status, body):
    response = requests.Response()
    response.status_code = status
    response._content = body if isinstance(body, bytes) else json.dumps(body).encode('utf-8')
    response.encoding = 'utf-8'
    return response


class FakeSession:
    """Stands in for requests.Session; replies from a queue."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'timeout': timeout})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_generate_round_parses_wire_format():
    session = FakeSession(_response(200, ROUND))
    api = HttpRoundApi('http://trainer.local/', session=session, timeout=3)

    data = asyncio.run(api.generate_round('alice'))
    assert data.target_shape == 'circle'
    assert data.sat_dir_idx == 3
    assert data.target_solid is False
    assert data.salt == 'a1b2c3'
    assert session.calls == [{
        'url': 'http://trainer.local/api/rounds/generate',
        'json': {'userId': 'alice'},
        'timeout': 3,
    }]


def test_submit_round_payload_and_verdict():
    session = FakeSession(_response(200, {'correct': True, 'newScore': 1950, 'newTier': 'T2'}))
    api = HttpRoundApi('http://trainer.local', session=session)

    verdict = asyncio.run(api.submit_round('alice', {'uShape': 'circle'}, 200.0, 'a1b2c3', 'STANDARD', timed_out=True))
    assert verdict.correct is True
    assert verdict.new_score == 1950
    assert verdict.new_tier is Tier.T2
    assert verdict.reason is None
    sent = session.calls[0]
    assert sent['url'] == 'http://trainer.local/api/rounds/submit'
    assert sent['json'] == {
        'userId': 'alice',
        'answer': {'uShape': 'circle'},
        'speed': 200.0,
        'manifest': {'salt': 'a1b2c3'},
        'mode': 'STANDARD',
        'timedOut': True,
    }


def test_soft_rejection_reason_is_kept():
    session = FakeSession(_response(200, {'correct': False, 'newScore': 0, 'newTier': 'T1', 'reason': 'TEMPORAL_ANOMALY'}))
    verdict = asyncio.run(HttpRoundApi('http://x', session=session).submit_round('a', {}, 1.0, 's', 'STANDARD'))
    assert verdict.reason == 'TEMPORAL_ANOMALY'


@pytest.mark.parametrize('reply', [
    requests.ConnectionError('refused'),
    requests.Timeout('too slow'),
    _response(500, {'error': 'internal', 'message': 'could not store round'}),
    _response(400, {'error': 'invalid-argument', 'message': 'userId is required'}),
    _response(200, b'<html>proxy error</html>'),
    _response(200, {'targetShape': 'circle'}),
])
def test_failures_become_transport_errors(reply):
    api = HttpRoundApi('http://x', session=FakeSession(reply))
    with pytest.raises(TransportError):
        asyncio.run(api.generate_round('alice'))
