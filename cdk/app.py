#!/usr/bin/env python3
import os
import aws_cdk as cdk
from stacks.api_stack import ApiStack

app = cdk.App()

env = cdk.Environment(
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=os.getenv("CDK_DEFAULT_REGION", "us-east-1")
)

github_owner = app.node.try_get_context("github_owner") or os.getenv("GITHUB_OWNER")
github_repo = app.node.try_get_context("github_repo") or os.getenv("GITHUB_REPO")
if not github_owner or not github_repo:
    raise SystemExit("set -c github_owner=... -c github_repo=... (or GITHUB_OWNER / GITHUB_REPO)")

email_file_path = app.node.try_get_context("email_file_path") or "subscribers.txt"
cors_enabled = str(app.node.try_get_context("cors_enabled") or "true").lower() in ("1", "true", "yes", "on")
max_write_attempts = int(app.node.try_get_context("max_write_attempts") or 1)

# Lambda + API GW + Secrets Manager token
api = ApiStack(app, "SubscribeApiStack",
               env=env,
               github_owner=github_owner,
               github_repo=github_repo,
               email_file_path=email_file_path,
               cors_enabled=cors_enabled,
               max_write_attempts=max_write_attempts,
               enable_xray=True)

app.synth()
