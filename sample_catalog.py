from __future__ import annotations

from catalog import Catalog, CatalogEntry, Response, build_catalog

CATALOG_REVISION = "orgbot-demo-2025.1"

FOLLOW_UP_CODE_QUESTION = "Would you like to see how the code implementation works?"

PROMPTS = (
    "Check for public S3 buckets",
    "Connect Jira to OrgBot",
    "Upload latest privacy policy",
    "List users without MFA",
    "Generate a security checklist",
)

DEFAULT_RESPONSE = Response(
    text=(
        "I'm sorry, I don't have information about that topic yet. Please try asking about "
        "GuardDuty, SSO, DNS, cost control, or account management."
    ),
    code=r"""# Example placeholder code
echo "No specific code available for this query"
# Please try one of the supported topics:
# - GuardDuty setup
# - SSO configuration
# - DNS management
# - Cost control
# - Account management""",
)

# Raw strings: shell line continuations and in-sample "\n" escapes are shown
# literally, as a reader would paste them, not joined or expanded.
_PUBLIC_S3_CODE = r"""# Bash (AWS CLI)
aws s3api list-buckets --query "Buckets[].Name" --output text | xargs -I {} aws s3api get-bucket-acl --bucket {} --query "Grants[?Grantee.URI=='http://acs.amazonaws.com/groups/global/AllUsers']"

# Python (boto3)
import boto3

s3 = boto3.client('s3')
for bucket in s3.list_buckets()['Buckets']:
    acl = s3.get_bucket_acl(Bucket=bucket['Name'])
    for grant in acl['Grants']:
        if grant.get('Grantee', {}).get('URI') == 'http://acs.amazonaws.com/groups/global/AllUsers':
            print(f"Public bucket found: {bucket['Name']}")
"""

_JIRA_CODE = r"""# Python (requests)
import requests

JIRA_URL = "https://your-domain.atlassian.net"
API_TOKEN = "your_api_token"
EMAIL = "your_email"

headers = {
    "Authorization": f"Basic {EMAIL}:{API_TOKEN}",
    "Content-Type": "application/json"
}

response = requests.get(f"{JIRA_URL}/rest/api/3/project", headers=headers)
print(response.json())
"""

_PRIVACY_POLICY_CODE = r"""// JavaScript (Node.js/Express)
const express = require('express');
const multer = require('multer');
const upload = multer({ dest: 'uploads/' });

const app = express();
app.post('/upload', upload.single('policy'), (req, res) => {
  res.send('Privacy policy uploaded: ' + req.file.originalname);
});
"""

_MFA_CODE = r"""# Bash (AWS CLI)
aws iam list-users --query 'Users[*].UserName' --output text | xargs -I {} bash -c 'aws iam list-mfa-devices --user-name {} --query "MFADevices" --output text | grep -q . || echo {}'

# Python (boto3)
import boto3

iam = boto3.client('iam')
for user in iam.list_users()['Users']:
    mfa = iam.list_mfa_devices(UserName=user['UserName'])
    if not mfa['MFADevices']:
        print(f"User without MFA: {user['UserName']}")
"""

_CHECKLIST_CODE = r"""# security_checklist_generator.py

checklist = [
    "1. Ensure all S3 buckets are private",
    "2. Enable MFA for all users",
    "3. Rotate IAM credentials regularly",
    "4. Review security group rules",
    "5. Enable GuardDuty and CloudTrail",
    "6. Audit unused IAM roles and users",
    "7. Enforce strong password policies",
    "8. Check for public AMIs",
    "9. Enable logging for all resources",
    "10. Review third-party app permissions"
]

with open("security_checklist.md", "w") as f:
    f.write("# Security Checklist\n\n")
    for item in checklist:
        f.write(f"- {item}\n")

print("Security checklist generated: security_checklist.md")
"""

_GUARDDUTY_CODE = r"""# Enable GuardDuty
aws guardduty create-detector \
  --enable \
  --finding-publishing-frequency FIFTEEN_MINUTES \
  --data-sources S3Logs={Enable=true} \
  --region us-east-1"""

_SSO_CODE = r"""# Create AWS SSO instance
aws sso-admin create-instance \
  --name "MySSOInstance" \
  --region us-east-1

# Create permission set
aws sso-admin create-permission-set \
  --instance-arn "arn:aws:sso:::instance/ssoins-xxxxxxxxxxxxx" \
  --name "AdministratorAccess" \
  --description "Provides full access to AWS services" \
  --session-duration "PT8H"
"""

_DNS_CODE = r"""# Create hosted zone
aws route53 create-hosted-zone \
  --name "example.com" \
  --caller-reference "2024-03-20-01"

# Add A record
aws route53 change-resource-record-sets \
  --hosted-zone-id "ZXXXXXXXXXXXXX" \
  --change-batch '{
    "Changes": [{
      "Action": "CREATE",
      "ResourceRecordSet": {
        "Name": "example.com",
        "Type": "A",
        "TTL": 300,
        "ResourceRecords": [{"Value": "192.0.2.1"}]
      }
    }]
  }'"""

_COST_CONTROL_CODE = r"""# Create budget
aws budgets create-budget \
  --account-id 123456789012 \
  --budget '{
    "BudgetName": "MonthlyBudget",
    "BudgetLimit": {
      "Amount": "1000",
      "Unit": "USD"
    },
    "BudgetType": "COST",
    "TimeUnit": "MONTHLY"
  }'

# Create budget notification
aws budgets create-notification \
  --account-id 123456789012 \
  --budget-name "MonthlyBudget" \
  --notification '{
    "NotificationType": "ACTUAL",
    "ComparisonOperator": "GREATER_THAN",
    "Threshold": 80,
    "ThresholdType": "PERCENTAGE",
    "NotificationState": "ALARM"
  }'"""

_ACCOUNTS_CODE = r"""# Create organization
aws organizations create-organization \
  --feature-set ALL

# Create account
aws organizations create-account \
  --email "admin@example.com" \
  --account-name "Development" \
  --role-name "OrganizationAccountAccessRole" \
  --iam-user-access-to-billing DENY"""

PERMISSION_SETS_CODE = r"""// 🔧 Update targetGroups and managedPolicies with your team-specific values.

const teamA = new PermissionSets(this, 'TeamAPermissionSet', {
  instanceArn,
  permissionSetName: 'TeamAAccess',
  managedPolicies: ['arn:aws:iam::aws:policy/PowerUserAccess'],
  targetGroups: ['TeamA']
});

const teamB = new PermissionSets(this, 'TeamBPermissionSet', {
  instanceArn,
  permissionSetName: 'TeamBAccess',
  managedPolicies: ['arn:aws:iam::aws:policy/ViewOnlyAccess'],
  targetGroups: ['TeamB']
});"""

PERMISSION_SETS_TEXT = (
    "To assign different permission sets to two teams of users across multiple AWS accounts, "
    "you can use Chatbot's PermissionSets. Here's how:\n\n"
    "1. Define permission sets for each team\n"
    "2. Assign the permission sets to the appropriate AWS accounts\n"
    "3. Map users to their respective teams\n\n"
    f"{FOLLOW_UP_CODE_QUESTION}"
)


def _permission_sets_variations() -> tuple[str, ...]:
    # Speech transcription often hears "assign" as "sign" or "send".
    base = "how do i {verb} different permission sets to two teams of users across multiple aws {noun}"
    return tuple(base.format(verb=v, noun=n) for v in ("assign", "sign", "send") for n in ("account", "accounts"))


def builtin_entries() -> tuple[CatalogEntry, ...]:
    prompt_entries = (
        CatalogEntry(
            title="Check for public S3 buckets",
            keys=(),
            response=Response(
                text=(
                    "To check for public S3 buckets, you can use the AWS CLI or Python (boto3). "
                    "Would you like to see a sample script?"
                ),
                code=_PUBLIC_S3_CODE,
            ),
        ),
        CatalogEntry(
            title="Connect Jira to OrgBot",
            keys=(),
            response=Response(
                text=(
                    "To connect Jira to OrgBot, generate an API token in your Atlassian account and add it "
                    "to OrgBot's integrations. Would you like to see a sample integration script?"
                ),
                code=_JIRA_CODE,
            ),
        ),
        CatalogEntry(
            title="Upload latest privacy policy",
            keys=(),
            response=Response(
                text=(
                    "To upload your latest privacy policy, drag and drop the file or use the upload button. "
                    "Would you like to see a sample upload handler?"
                ),
                code=_PRIVACY_POLICY_CODE,
            ),
        ),
        CatalogEntry(
            title="List users without MFA",
            keys=(),
            response=Response(
                text=(
                    "To list users without MFA, you can use the AWS CLI or Python (boto3). "
                    "Would you like to see a sample script?"
                ),
                code=_MFA_CODE,
            ),
        ),
        CatalogEntry(
            title="Generate a security checklist",
            keys=(),
            response=Response(
                text=(
                    "Here's a basic security checklist you can use to assess your cloud environment. "
                    "Would you like to see a Python script that generates this checklist as a markdown file?"
                ),
                code=_CHECKLIST_CODE,
            ),
        ),
    )

    question_entries = (
        CatalogEntry(
            title="How do I enable GuardDuty",
            keys=(),
            response=Response(
                text=(
                    "To enable AWS GuardDuty, you'll need to configure it in your AWS Management Console. "
                    "Here's how to do it:"
                ),
                code=_GUARDDUTY_CODE,
            ),
        ),
        CatalogEntry(
            title="How do I set up SSO",
            keys=(),
            response=Response(
                text=(
                    "Setting up AWS SSO involves configuring your identity provider and creating permission sets. "
                    "Here's the basic setup:"
                ),
                code=_SSO_CODE,
            ),
        ),
        CatalogEntry(
            title="How do I configure DNS",
            keys=(),
            response=Response(
                text=(
                    "To configure DNS in AWS Route 53, you'll need to create a hosted zone and add records. "
                    "Here's an example:"
                ),
                code=_DNS_CODE,
            ),
        ),
        CatalogEntry(
            title="How do I add cost control",
            keys=(),
            response=Response(
                text=(
                    "To implement cost controls in AWS, you can set up budgets and alerts. "
                    "Here's how to create a monthly budget:"
                ),
                code=_COST_CONTROL_CODE,
            ),
        ),
        CatalogEntry(
            title="How do I manage accounts",
            keys=(),
            response=Response(
                text=(
                    "To manage AWS accounts using AWS Organizations, you can create and organize accounts. "
                    "Here's how:"
                ),
                code=_ACCOUNTS_CODE,
            ),
        ),
        CatalogEntry(
            title="How do I assign different permission sets to two teams of users across multiple AWS accounts",
            keys=("how do i assign different permission sets to two teams of users across multiple aws account",),
            response=Response(text=PERMISSION_SETS_TEXT, code=PERMISSION_SETS_CODE),
            variations=_permission_sets_variations(),
        ),
    )
    return prompt_entries + question_entries


def load_builtin_catalog() -> Catalog:
    """
    The OrgBot demo table: quick-pick prompts, AWS how-to questions, and the
    permission-sets walkthrough with its spoken-phrasing variants.
    """
    return build_catalog(
        revision=CATALOG_REVISION,
        entries=builtin_entries(),
        default_response=DEFAULT_RESPONSE,
        prompts=PROMPTS,
    )
