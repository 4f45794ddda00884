"""
Reference tasks built from git history and pasted attachments
"""

import logging
import re
import shutil
import subprocess
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional
from uuid import uuid4

from .models import GitLogEntry, Task

logger = logging.getLogger(__name__)

HASH_LINE = re.compile(r'^(?:commit\s+)?([0-9a-f]{7,40})$')
FETCHED_LINE = re.compile(r'^([0-9a-f]{7,40}) - (.+?), (.+?) : (.*)$')


class SourceError(Exception):
    """Raised when git history or attachments cannot be read"""
    pass


def new_task_id() -> str:
    return uuid4().hex[:9]


def parse_git_log(text: str) -> List[GitLogEntry]:
    """Parse pasted git history.

    Understands ``git log`` blocks (``commit <hash>``, ``Author:``,
    ``Date:``, message), bare hash lines, the lines produced by
    ``fetch_git_log`` and the one-line ``date | author - message`` form.
    """
    entries = []
    current: Optional[GitLogEntry] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        fetched = FETCHED_LINE.match(line)
        if fetched:
            if current is not None:
                entries.append(current)
                current = None
            entries.append(GitLogEntry(
                hash=fetched.group(1),
                author=fetched.group(2),
                date=fetched.group(3),
                message=fetched.group(4),
            ))
            continue

        hash_match = HASH_LINE.match(line)
        if hash_match:
            if current is not None:
                entries.append(current)
            current = GitLogEntry(hash=hash_match.group(1))
        elif line.startswith('Author:') and current is not None:
            current.author = line[len('Author:'):].strip()
        elif line.startswith('Date:') and current is not None:
            current.date = line[len('Date:'):].strip()
        elif '|' in line and ' - ' in line:
            date_author, message = line.split(' - ', 1)
            date_part, _, author = date_author.partition(' | ')
            if current is not None:
                entries.append(current)
                current = None
            entries.append(GitLogEntry(
                hash=new_task_id(),
                date=date_part.strip() or datetime.now().isoformat(),
                author=author.strip() or 'unknown',
                message=message.strip(),
            ))
        elif current is not None and not current.message:
            current.message = line

    if current is not None:
        entries.append(current)

    return entries


def fetch_git_log(repo_url: str, username: str, branch: str = 'main',
                  access_token: Optional[str] = None, days: int = 30,
                  max_count: int = 100) -> str:
    """Clone ``repo_url`` into a temporary directory and return the author's recent commits"""
    if not repo_url or not username:
        raise SourceError("Repository URL and username are required")

    auth_url = repo_url
    if access_token and 'github.com' in repo_url and repo_url.startswith('https://'):
        auth_url = repo_url.replace('https://', f'https://{access_token}@', 1)

    since = (datetime.now() - timedelta(days=days)).strftime('%Y-%m-%d')
    temp_dir = tempfile.mkdtemp(prefix='git-temp-')

    try:
        subprocess.run(
            ['git', 'clone', '--quiet', '--branch', branch, '--single-branch', auth_url, temp_dir],
            check=True, capture_output=True, text=True,
        )
        result = subprocess.run(
            ['git', '-C', temp_dir, 'log',
             f'--author={username}', f'--since={since}', f'--max-count={max_count}',
             '--pretty=format:%H|%an|%ad|%s', '--date=iso'],
            check=True, capture_output=True, text=True,
        )
    except FileNotFoundError:
        raise SourceError("git executable not found")
    except subprocess.CalledProcessError as e:
        logger.error(f"git failed: {e.stderr.strip() if e.stderr else e}")
        raise SourceError("Git repository access failed, check the URL, permissions or network")
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    lines = []
    for line in result.stdout.splitlines():
        parts = line.split('|', 3)
        if len(parts) != 4:
            continue
        commit_hash, author, commit_date, message = parts
        lines.append(f"{commit_hash[:7]} - {author}, {commit_date} : {message}")

    logger.info(f"Fetched {len(lines)} commits by {username} from {repo_url}")
    return '\n'.join(lines)


def build_git_reference_task(text: str) -> Task:
    """Wrap parsed git history in a zero-hour reference task"""
    commits = parse_git_log(text)
    if not commits:
        raise SourceError("No valid git log entries found, check the format")

    return Task(
        id=new_task_id(),
        name=f"Git log reference - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        total_hours=0,
        priority='medium',
        description=f"Git log reference material for AI generation\nContains {len(commits)} commits",
        source='gitlog',
        source_data={
            'gitCommits': [c.to_dict() for c in commits],
            'rawContent': text,
        },
    )


def build_attachment_reference_tasks(text: str = "",
                                     attachments: Optional[List[Dict]] = None) -> List[Task]:
    """One reference task for pasted text plus one per attachment.

    Each attachment is a dict with ``name``, ``type`` and ``content`` and an
    optional ``id``.
    """
    tasks = []
    now = datetime.now()

    if text.strip():
        tasks.append(Task(
            id=new_task_id(),
            name=f"Text reference - {now.strftime('%Y-%m-%d %H:%M:%S')}",
            total_hours=0,
            priority='medium',
            description="Text reference material for AI generation",
            source='attachment',
            source_data={'rawContent': text.strip()},
        ))

    for item in attachments or []:
        item_type = item.get('type', 'other')
        tasks.append(Task(
            id=new_task_id(),
            name=f"{item['name']} - attachment reference",
            total_hours=0,
            priority='medium',
            description=f"Attachment reference material for AI generation\nFile type: {item_type.upper()}",
            source='attachment',
            source_data={
                'rawContent': f"[{item['name']}]\nType: {item_type}\n{item.get('content', '')}",
                'attachmentId': item.get('id') or new_task_id(),
                'fileName': item['name'],
                'fileType': item_type,
            },
        ))

    return tasks


def load_attachment_file(path: str) -> Dict:
    """Read a text file as an attachment dict"""
    try:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            content = f.read()
    except OSError as e:
        raise SourceError(f"Could not read attachment {path}: {e}")

    name = Path(path).name
    return {'id': new_task_id(), 'name': name, 'type': 'text', 'content': content}


def load_git_log_file(path: str) -> Task:
    """Read saved git log output and wrap it in a reference task"""
    try:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            text = f.read()
    except OSError as e:
        raise SourceError(f"Could not read git log {path}: {e}")

    return build_git_reference_task(text)
