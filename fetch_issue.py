import os
import re

import requests

from melt_config import ISSUE_URL, GITHUB_TOKEN_ENV_VAR, USER_AGENT
from melt_config import FETCH_TIMEOUT
from melt_utils import debug, read_file


class FetchError(Exception):
    'The ICE reproduction could not be retrieved.'
    pass


ISSUE_NUMBER_RE = re.compile(r'^#(\d+)')


def issue_number(source):
    'Return the issue number if source looks like #1234, else None.'

    m = ISSUE_NUMBER_RE.match(source)
    if m:
        return int(m.group(1))
    return None


def get_issue(number, token):
    'Fetch an issue from the GitHub API. Returns the decoded JSON.'

    url = ISSUE_URL.format(number=number)
    headers = {'User-Agent': USER_AGENT,
               'Authorization': 'Bearer ' + token,
               'Accept': 'application/vnd.github+json'}
    try:
        resp = requests.get(url, headers=headers, timeout=FETCH_TIMEOUT)
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as e:
        raise FetchError('Failed to retrieve issue #{} from GitHub: {}'.format(
            number, e)) from e


def extract_reproduction(body):
    '''Return the ```rust blocks under the "### Code" heading of an issue
    body, which is where the ICE issue template puts the reproduction.
    Several blocks are joined in order.'''

    reproduction = []
    in_code_section = False
    in_code = False
    for line in body.splitlines():
        if in_code:
            if line.startswith('```'):
                in_code = False
            else:
                reproduction.append(line)
            continue
        if line.startswith('### Code'):
            in_code_section = True
        elif line.startswith('#') and in_code_section:
            in_code_section = False
        if in_code_section and line.lower().startswith('```rust'):
            in_code = True
    return '\n'.join(reproduction)


def retrieve(source):
    '''Read the source file, or, if source is an issue number like #1234,
    the reproduction from that rust-lang/rust issue. Returns bytes.'''

    number = issue_number(source)
    if number is None:
        debug('Source looks like a file')
        try:
            return read_file(source)
        except OSError as e:
            raise FetchError('Failed to read file {}: {}'.format(source, e))

    debug('Source looks like an issue number')
    token = os.environ.get(GITHUB_TOKEN_ENV_VAR)
    if not token:
        raise FetchError('Missing {} environment variable'.format(
            GITHUB_TOKEN_ENV_VAR))
    issue = get_issue(number, token)
    reproduction = extract_reproduction(issue.get('body') or '')
    if not reproduction:
        raise FetchError('No ```rust block under "### Code" in issue '
                         '#{}.'.format(number))
    debug('Reproduction:\n' + reproduction)
    return (reproduction + '\n').encode('utf-8')
