"""AWS integration: boto3 clients and resource type registrations."""
