"""Git repository, commit and pull request tools."""

import asyncio
import logging
import re
from urllib.parse import unquote

from ..apis.git import BRANCH_PREFIX, PULL_REQUEST_STATUSES, strip_branch_prefix
from ..errors import AdoApiError, AdoError
from ..registry import ToolTable
from ..schema import boolean, enum, number, string, whole_number

logger = logging.getLogger(__name__)

git_tools = ToolTable("git")

PROJECT = string("Project name (uses default if not specified)", optional=True)
REPOSITORY = string("Repository name or ID")

MAX_MATCHES_PER_FILE = 10
MAX_LINE_LENGTH = 200

_PULL_REQUEST_ARTIFACT = re.compile(r"PullRequestId/(.+)$", re.IGNORECASE)


def _person(identity):
    identity = identity or {}
    return {
        "name": identity.get("name"),
        "email": identity.get("email"),
        "date": identity.get("date"),
    }


def _change(change):
    item = change.get("item") or {}
    return {
        "item": {"path": item.get("path"), "gitObjectType": item.get("gitObjectType")},
        "changeType": change.get("changeType"),
    }


def work_item_patterns(work_item_id):
    """The ways a commit or PR text can mention a work item, lowercased."""
    return [
        f"#{work_item_id}".lower(),
        f"AB#{work_item_id}".lower(),
        f"[{work_item_id}]".lower(),
        f"work item {work_item_id}".lower(),
    ]


def mentions(text, patterns):
    text = (text or "").lower()
    return any(pattern in text for pattern in patterns)


def pull_request_id_from_artifact(url):
    """
    Extract the PR ID from a ``vstfs:///Git/PullRequestId/...`` artifact link.

    The link ends in either ``PullRequestId/<id>`` or
    ``PullRequestId/<project>%2F<repo>%2F<id>``.
    """
    match = _PULL_REQUEST_ARTIFACT.search(url or "")
    if not match:
        return None
    last = unquote(match.group(1)).rstrip("/").split("/")[-1]
    return int(last) if last.isdigit() else None


@git_tools.operation(project=PROJECT)
def list_repos(client, args):
    """List all Git repositories in a project"""
    project = client.require_project(args.get("project"))
    repos = client.get_git_api().list_repositories(project)
    return [
        {
            "id": r.get("id"),
            "name": r.get("name"),
            "url": r.get("url"),
            "webUrl": r.get("webUrl"),
            "defaultBranch": r.get("defaultBranch"),
            "size": r.get("size"),
            "project": (r.get("project") or {}).get("name"),
        }
        for r in repos
    ]


@git_tools.operation(project=string("Project name", optional=True), repository=REPOSITORY)
def list_branches(client, args):
    """List branches in a repository"""
    project = client.require_project(args.get("project"))
    branches = client.get_git_api().list_branches(project, args["repository"])
    return [
        {
            "name": b.get("name"),
            "commit": (b.get("commit") or {}).get("commitId"),
            "isBaseVersion": b.get("isBaseVersion"),
            "aheadCount": b.get("aheadCount"),
            "behindCount": b.get("behindCount"),
        }
        for b in branches
    ]


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    branch=string('Branch name (e.g., "refs/heads/main")', optional=True),
    author=string("Filter by author email", optional=True),
    fromDate=string("Start date (ISO format)", optional=True),
    toDate=string("End date (ISO format)", optional=True),
    top=number("Max commits to return", default=50),
)
def list_commits(client, args):
    """Get commit history for a repository"""
    project = client.require_project(args.get("project"))
    commits = client.get_git_api().list_commits(
        project,
        args["repository"],
        branch=args.get("branch"),
        author=args.get("author"),
        from_date=args.get("fromDate"),
        to_date=args.get("toDate"),
        top=whole_number(args, "top"),
    )
    return [
        {
            "commitId": c.get("commitId"),
            "comment": c.get("comment"),
            "author": _person(c.get("author")),
            "committer": _person(c.get("committer")),
            "changeCounts": c.get("changeCounts"),
            "url": c.get("url"),
        }
        for c in commits
    ]


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    commitId=string("Full commit SHA"),
    includeChanges=boolean("Include file changes", default=True),
)
def get_commit(client, args):
    """Get detailed information about a specific commit including changes"""
    project = client.require_project(args.get("project"))
    commit = client.get_git_api().get_commit(
        project,
        args["repository"],
        args["commitId"],
        change_count=100 if args["includeChanges"] else 0,
    )
    changes = commit.get("changes")
    return {
        "commitId": commit.get("commitId"),
        "comment": commit.get("comment"),
        "author": commit.get("author"),
        "committer": commit.get("committer"),
        "changeCounts": commit.get("changeCounts"),
        "changes": [_change(ch) for ch in changes] if changes is not None else None,
        "parents": commit.get("parents"),
        "url": commit.get("url"),
    }


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    commitId=string("Commit SHA"),
    path=string("File path to get diff for"),
)
def get_commit_diff(client, args):
    """Get the diff/changes for a file in a commit"""
    git_api = client.get_git_api()
    project = client.require_project(args.get("project"))
    repository, commit_id, path = args["repository"], args["commitId"], args["path"]

    commit = git_api.get_commit(project, repository, commit_id)
    parents = commit.get("parents") or []
    parent_commit_id = parents[0] if parents else None

    current_content = git_api.get_item_content(
        project, repository, path, version=commit_id, version_type="commit"
    )

    previous_content = None
    if parent_commit_id:
        try:
            previous_content = git_api.get_item_content(
                project, repository, path, version=parent_commit_id, version_type="commit"
            )
        except AdoApiError as e:
            # New file: nothing to compare against in the parent.
            logger.debug(f"{path} not readable at parent {parent_commit_id}: {e}")

    return {
        "path": path,
        "commitId": commit_id,
        "parentCommitId": parent_commit_id,
        "currentContent": current_content,
        "previousContent": previous_content,
    }


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    status=enum(PULL_REQUEST_STATUSES, "PR status filter", default="active"),
    creatorId=string("Filter by creator ID", optional=True),
    reviewerId=string("Filter by reviewer ID", optional=True),
    top=number("Max PRs to return", default=50),
)
def list_pull_requests(client, args):
    """List pull requests in a repository"""
    project = client.require_project(args.get("project"))
    prs = client.get_git_api().list_pull_requests(
        project,
        args["repository"],
        status=args["status"],
        creator_id=args.get("creatorId"),
        reviewer_id=args.get("reviewerId"),
        top=whole_number(args, "top"),
    )
    return [
        {
            "pullRequestId": pr.get("pullRequestId"),
            "title": pr.get("title"),
            "description": pr.get("description"),
            "status": pr.get("status"),
            "createdBy": (pr.get("createdBy") or {}).get("displayName"),
            "creationDate": pr.get("creationDate"),
            "sourceRefName": pr.get("sourceRefName"),
            "targetRefName": pr.get("targetRefName"),
            "mergeStatus": pr.get("mergeStatus"),
            "isDraft": pr.get("isDraft"),
            "reviewers": [
                {"displayName": r.get("displayName"), "vote": r.get("vote")}
                for r in pr.get("reviewers") or []
            ],
            "url": pr.get("url"),
        }
        for pr in prs
    ]


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    pullRequestId=number("Pull request ID"),
)
async def get_pull_request(client, args):
    """Get detailed information about a pull request including comments and threads"""
    git_api = client.get_git_api()
    project = client.require_project(args.get("project"))
    repository, pr_id = args["repository"], whole_number(args, "pullRequestId")

    pr, threads = await asyncio.gather(
        asyncio.to_thread(git_api.get_pull_request, project, repository, pr_id),
        asyncio.to_thread(git_api.get_pull_request_threads, project, repository, pr_id),
    )

    return {
        "pullRequestId": pr.get("pullRequestId"),
        "title": pr.get("title"),
        "description": pr.get("description"),
        "status": pr.get("status"),
        "createdBy": pr.get("createdBy"),
        "creationDate": pr.get("creationDate"),
        "closedDate": pr.get("closedDate"),
        "sourceRefName": pr.get("sourceRefName"),
        "targetRefName": pr.get("targetRefName"),
        "mergeStatus": pr.get("mergeStatus"),
        "isDraft": pr.get("isDraft"),
        "reviewers": pr.get("reviewers"),
        "commits": pr.get("commits"),
        "threads": [
            {
                "id": t.get("id"),
                "status": t.get("status"),
                "comments": [
                    {
                        "author": (c.get("author") or {}).get("displayName"),
                        "content": c.get("content"),
                        "publishedDate": c.get("publishedDate"),
                        "commentType": c.get("commentType"),
                    }
                    for c in t.get("comments") or []
                ],
                "threadContext": t.get("threadContext"),
            }
            for t in threads
        ],
    }


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    baseBranch=string('Base branch (e.g., "main" or "refs/heads/main")'),
    targetBranch=string('Target branch to compare (e.g., "develop")'),
    top=number("Max commits to return", default=50),
)
def compare_branches(client, args):
    """Compare two branches - shows commits in target that are not in base (useful for regression analysis)"""
    project = client.require_project(args.get("project"))

    def normalize(ref):
        return ref if ref.startswith(BRANCH_PREFIX) else f"{BRANCH_PREFIX}{ref}"

    diffs = client.get_git_api().get_commit_diffs(
        project,
        args["repository"],
        normalize(args["baseBranch"]),
        normalize(args["targetBranch"]),
        top=whole_number(args, "top"),
    )
    changes = diffs.get("changes")
    return {
        "baseBranch": args["baseBranch"],
        "targetBranch": args["targetBranch"],
        "aheadCount": diffs.get("aheadCount"),
        "behindCount": diffs.get("behindCount"),
        "commonCommit": diffs.get("commonCommit"),
        "changes": [_change(c) for c in changes] if changes is not None else None,
    }


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    searchText=string("Text to search for in file contents"),
    path=string('Folder path to search in (e.g., "/src")', optional=True),
    branch=string("Branch to search (default: default branch)", optional=True),
    fileExtension=string('Filter by file extension (e.g., ".cs", ".ts")', optional=True),
    top=number("Max results to return", default=50),
)
def search_code(client, args):
    """Search for code/text content in a repository"""
    git_api = client.get_git_api()
    project = client.require_project(args.get("project"))
    repository = args["repository"]
    needle = args["searchText"].lower()
    top = whole_number(args, "top")

    repo = git_api.get_repository(project, repository) or {}
    version = args.get("branch") or strip_branch_prefix(repo.get("defaultBranch"))

    # One folder level only; pass a subfolder path to search deeper.
    items = git_api.list_items(project, repository, args.get("path") or "/")

    results = []
    for item in items:
        item_path = item.get("path")
        if not item_path or item.get("isFolder"):
            continue
        if args.get("fileExtension") and not item_path.endswith(args["fileExtension"]):
            continue

        try:
            content = git_api.get_item_content(project, repository, item_path, version=version)
        except AdoError as e:
            logger.debug(f"Skipping unreadable file {item_path}: {e}")
            continue

        matches = [
            {"line": line_no, "content": line.strip()[:MAX_LINE_LENGTH]}
            for line_no, line in enumerate((content or "").split("\n"), start=1)
            if needle in line.lower()
        ]
        if matches:
            results.append({"path": item_path, "matches": matches[:MAX_MATCHES_PER_FILE]})
        if len(results) >= top:
            break

    return {
        "searchText": args["searchText"],
        "repository": repository,
        "branch": version,
        "resultCount": len(results),
        "results": results[:top],
    }


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    workItemId=number("Work item ID to search for"),
    top=number("Max commits to return", default=50),
)
def get_commits_for_work_item(client, args):
    """Find commits associated with a work item ID (searches commit messages for #ID)"""
    project = client.require_project(args.get("project"))
    work_item_id = whole_number(args, "workItemId")
    commits = client.get_git_api().list_commits(project, args["repository"], top=whole_number(args, "top"))

    patterns = work_item_patterns(work_item_id)
    related = [c for c in commits if mentions(c.get("comment"), patterns)]

    return {
        "workItemId": work_item_id,
        "commitCount": len(related),
        "commits": [
            {
                "commitId": c.get("commitId"),
                "comment": c.get("comment"),
                "author": _person(c.get("author")),
                "changeCounts": c.get("changeCounts"),
                "url": c.get("url"),
            }
            for c in related
        ],
    }


@git_tools.operation(
    project=string("Project name", optional=True),
    repository=REPOSITORY,
    workItemId=number("Work item ID"),
)
def get_prs_for_work_item(client, args):
    """Find pull requests linked to a work item"""
    git_api = client.get_git_api()
    project = client.require_project(args.get("project"))
    repository = args["repository"]
    work_item_id = whole_number(args, "workItemId")

    work_item = client.get_work_item_api().get_work_item(work_item_id, expand=True) or {}

    prs = []
    for relation in work_item.get("relations") or []:
        if relation.get("rel") != "ArtifactLink":
            continue
        pr_id = pull_request_id_from_artifact(relation.get("url"))
        if pr_id is None:
            continue
        try:
            pr = git_api.get_pull_request(project, repository, pr_id)
        except AdoApiError as e:
            # Linked PR lives in another repository.
            logger.debug(f"PR {pr_id} not found in {repository}: {e}")
            prs.append({"pullRequestId": pr_id, "title": None, "status": None, "url": relation.get("url")})
            continue
        prs.append(
            {
                "pullRequestId": pr.get("pullRequestId") or pr_id,
                "title": pr.get("title"),
                "status": pr.get("status"),
                "url": pr.get("url"),
            }
        )

    patterns = work_item_patterns(work_item_id)[:2]
    seen = {p["pullRequestId"] for p in prs}
    for pr in git_api.list_pull_requests(project, repository, status="all"):
        text = f"{pr.get('title') or ''} {pr.get('description') or ''}"
        if mentions(text, patterns) and pr.get("pullRequestId") not in seen:
            seen.add(pr.get("pullRequestId"))
            prs.append(
                {
                    "pullRequestId": pr.get("pullRequestId"),
                    "title": pr.get("title"),
                    "status": pr.get("status"),
                    "url": pr.get("url"),
                }
            )

    return {
        "workItemId": work_item_id,
        "pullRequestCount": len(prs),
        "pullRequests": prs,
    }
