"""AWS resource type registrations.

Each supported type has a list method turning API responses into resource
descriptors and a delete method issuing the boto3 call. Declared
dependencies follow EC2/VPC ownership: anything placed in a subnet or
security group is deleted before it, and everything inside a VPC is deleted
before the VPC.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

import boto3
from botocore.exceptions import ClientError

from ..errors import DeletionError
from ..models.resource import ResourceDescriptor
from ..wipe.catalog import ResourceCatalog
from .client import DEFAULT_MAX_RETRIES, create_boto_client

logger = logging.getLogger(__name__)

# Error codes meaning the resource is already gone
NOT_FOUND_CODES = {
    "InvalidInstanceID.NotFound",
    "InvalidGroup.NotFound",
    "InvalidSubnetID.NotFound",
    "InvalidVpcID.NotFound",
    "InvalidRouteTableID.NotFound",
    "InvalidInternetGatewayID.NotFound",
    "InvalidNetworkInterfaceID.NotFound",
    "InvalidVolume.NotFound",
    "NatGatewayNotFound",
    "AWS.SimpleQueueService.NonExistentQueue",
    "QueueDoesNotExist",
    "NotFound",
    "NoSuchEntity",
    "ResourceNotFoundException",
}

# Error codes worth retrying: throttling and dependencies still being torn down
TRANSIENT_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RequestThrottled",
    "ServiceUnavailable",
    "DependencyViolation",
    "DeleteConflict",
    "ResourceInUse",
    "ResourceInUseException",
    "ResourceConflictException",
    "VolumeInUse",
    "InvalidNetworkInterface.InUse",
    "IncorrectState",
}

# resource type -> (list method, delete method, depends on)
AWS_RESOURCE_TYPES = {
    "aws_instance": (
        "list_instances",
        "delete_instance",
        ("aws_network_interface", "aws_ebs_volume", "aws_subnet", "aws_security_group"),
    ),
    "aws_lambda_function": ("list_lambda_functions", "delete_lambda_function", ("aws_subnet", "aws_security_group")),
    "aws_nat_gateway": ("list_nat_gateways", "delete_nat_gateway", ("aws_subnet",)),
    "aws_network_interface": (
        "list_network_interfaces",
        "delete_network_interface",
        ("aws_subnet", "aws_security_group"),
    ),
    "aws_ebs_volume": ("list_volumes", "delete_volume", ()),
    "aws_security_group": ("list_security_groups", "delete_security_group", ("aws_vpc",)),
    "aws_subnet": ("list_subnets", "delete_subnet", ("aws_vpc",)),
    "aws_route_table": ("list_route_tables", "delete_route_table", ("aws_vpc",)),
    "aws_internet_gateway": ("list_internet_gateways", "delete_internet_gateway", ("aws_vpc",)),
    "aws_vpc": ("list_vpcs", "delete_vpc", ()),
    "aws_sqs_queue": ("list_queues", "delete_queue", ()),
    "aws_sns_topic": ("list_topics", "delete_topic", ()),
    "aws_dynamodb_table": ("list_tables", "delete_table", ()),
    "aws_iam_role": ("list_roles", "delete_role", ()),
}


def tags_to_dict(tags: Optional[list]) -> dict[str, str]:
    """Convert AWS [{"Key": k, "Value": v}] tags to a dictionary."""
    return {tag["Key"]: tag.get("Value", "") for tag in tags or [] if "Key" in tag}


def client_error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def to_deletion_error(error: ClientError) -> DeletionError:
    """Classify a ClientError as transient or permanent."""
    code = client_error_code(error)
    message = error.response.get("Error", {}).get("Message", str(error))
    return DeletionError(f"{code}: {message}", transient=code in TRANSIENT_CODES, code=code)


class AwsResources:
    """boto3-backed list/delete implementations for one region.

    Clients are created lazily, once per service, and shared across worker
    threads.
    """

    def __init__(
        self,
        session: Optional[boto3.Session] = None,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.session = session
        self.region = region
        self.profile = profile
        self.max_retries = max_retries
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def client(self, service_name: str) -> Any:
        with self._lock:
            if service_name not in self._clients:
                self._clients[service_name] = create_boto_client(
                    service_name=service_name,
                    region_name=self.region,
                    profile_name=self.profile,
                    max_retries=self.max_retries,
                    session=self.session,
                )
            return self._clients[service_name]

    def _paginate(self, service_name: str, operation: str, key: str, **kwargs: Any) -> Iterator[dict]:
        paginator = self.client(service_name).get_paginator(operation)
        for page in paginator.paginate(**kwargs):
            yield from page.get(key, [])

    def _call_delete(self, resource: ResourceDescriptor, service_name: str, method: str, **params: Any) -> None:
        """Issue one delete call, treating already-deleted resources as success."""
        try:
            getattr(self.client(service_name), method)(**params)
        except ClientError as e:
            if client_error_code(e) in NOT_FOUND_CODES:
                logger.info(f"Resource {resource.resource_id} already deleted")
                return
            raise to_deletion_error(e) from e

    # EC2 compute

    def list_instances(self) -> Iterator[ResourceDescriptor]:
        for reservation in self._paginate("ec2", "describe_instances", "Reservations"):
            for instance in reservation.get("Instances", []):
                if instance.get("State", {}).get("Name") in ("terminated", "shutting-down"):
                    continue
                tags = tags_to_dict(instance.get("Tags"))
                yield ResourceDescriptor(
                    resource_type="aws_instance",
                    resource_id=instance["InstanceId"],
                    name=tags.get("Name", ""),
                    tags=tags,
                    created_at=instance.get("LaunchTime"),
                    attributes={
                        "VpcId": instance.get("VpcId"),
                        "SubnetId": instance.get("SubnetId"),
                        "State": instance.get("State", {}).get("Name"),
                    },
                )

    def delete_instance(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "terminate_instances", InstanceIds=[resource.resource_id])

    def list_volumes(self) -> Iterator[ResourceDescriptor]:
        for volume in self._paginate("ec2", "describe_volumes", "Volumes"):
            tags = tags_to_dict(volume.get("Tags"))
            yield ResourceDescriptor(
                resource_type="aws_ebs_volume",
                resource_id=volume["VolumeId"],
                name=tags.get("Name", ""),
                tags=tags,
                created_at=volume.get("CreateTime"),
                attributes={"State": volume.get("State")},
            )

    def delete_volume(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "delete_volume", VolumeId=resource.resource_id)

    # EC2 networking

    def list_vpcs(self) -> Iterator[ResourceDescriptor]:
        for vpc in self._paginate("ec2", "describe_vpcs", "Vpcs"):
            if vpc.get("IsDefault"):
                continue
            tags = tags_to_dict(vpc.get("Tags"))
            yield ResourceDescriptor(
                resource_type="aws_vpc",
                resource_id=vpc["VpcId"],
                name=tags.get("Name", ""),
                tags=tags,
                attributes={"CidrBlock": vpc.get("CidrBlock")},
            )

    def delete_vpc(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "delete_vpc", VpcId=resource.resource_id)

    def list_subnets(self) -> Iterator[ResourceDescriptor]:
        for subnet in self._paginate("ec2", "describe_subnets", "Subnets"):
            if subnet.get("DefaultForAz"):
                continue
            tags = tags_to_dict(subnet.get("Tags"))
            yield ResourceDescriptor(
                resource_type="aws_subnet",
                resource_id=subnet["SubnetId"],
                arn=subnet.get("SubnetArn"),
                name=tags.get("Name", ""),
                tags=tags,
                attributes={"VpcId": subnet.get("VpcId")},
            )

    def delete_subnet(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "delete_subnet", SubnetId=resource.resource_id)

    def list_security_groups(self) -> Iterator[ResourceDescriptor]:
        for group in self._paginate("ec2", "describe_security_groups", "SecurityGroups"):
            # Every VPC owns a "default" group that cannot be deleted
            if group.get("GroupName") == "default":
                continue
            yield ResourceDescriptor(
                resource_type="aws_security_group",
                resource_id=group["GroupId"],
                name=group.get("GroupName", ""),
                tags=tags_to_dict(group.get("Tags")),
                attributes={"VpcId": group.get("VpcId")},
            )

    def delete_security_group(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "delete_security_group", GroupId=resource.resource_id)

    def list_route_tables(self) -> Iterator[ResourceDescriptor]:
        for table in self._paginate("ec2", "describe_route_tables", "RouteTables"):
            if any(association.get("Main") for association in table.get("Associations", [])):
                continue
            tags = tags_to_dict(table.get("Tags"))
            yield ResourceDescriptor(
                resource_type="aws_route_table",
                resource_id=table["RouteTableId"],
                name=tags.get("Name", ""),
                tags=tags,
                attributes={"VpcId": table.get("VpcId")},
            )

    def delete_route_table(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "delete_route_table", RouteTableId=resource.resource_id)

    def list_internet_gateways(self) -> Iterator[ResourceDescriptor]:
        for gateway in self._paginate("ec2", "describe_internet_gateways", "InternetGateways"):
            tags = tags_to_dict(gateway.get("Tags"))
            yield ResourceDescriptor(
                resource_type="aws_internet_gateway",
                resource_id=gateway["InternetGatewayId"],
                name=tags.get("Name", ""),
                tags=tags,
                attributes={"VpcIds": [a["VpcId"] for a in gateway.get("Attachments", []) if "VpcId" in a]},
            )

    def delete_internet_gateway(self, resource: ResourceDescriptor) -> None:
        # An attached gateway has to be detached before it can be deleted
        for vpc_id in resource.attributes.get("VpcIds", []):
            self._call_delete(
                resource,
                "ec2",
                "detach_internet_gateway",
                InternetGatewayId=resource.resource_id,
                VpcId=vpc_id,
            )
        self._call_delete(resource, "ec2", "delete_internet_gateway", InternetGatewayId=resource.resource_id)

    def list_nat_gateways(self) -> Iterator[ResourceDescriptor]:
        for gateway in self._paginate("ec2", "describe_nat_gateways", "NatGateways"):
            if gateway.get("State") in ("deleted", "deleting"):
                continue
            tags = tags_to_dict(gateway.get("Tags"))
            yield ResourceDescriptor(
                resource_type="aws_nat_gateway",
                resource_id=gateway["NatGatewayId"],
                name=tags.get("Name", ""),
                tags=tags,
                created_at=gateway.get("CreateTime"),
                attributes={"VpcId": gateway.get("VpcId"), "SubnetId": gateway.get("SubnetId")},
            )

    def delete_nat_gateway(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "delete_nat_gateway", NatGatewayId=resource.resource_id)

    def list_network_interfaces(self) -> Iterator[ResourceDescriptor]:
        for interface in self._paginate("ec2", "describe_network_interfaces", "NetworkInterfaces"):
            # Interfaces managed by other services go away with their owner
            if interface.get("RequesterManaged"):
                continue
            tags = tags_to_dict(interface.get("TagSet"))
            yield ResourceDescriptor(
                resource_type="aws_network_interface",
                resource_id=interface["NetworkInterfaceId"],
                name=tags.get("Name", interface.get("Description", "")),
                tags=tags,
                attributes={
                    "VpcId": interface.get("VpcId"),
                    "SubnetId": interface.get("SubnetId"),
                    "Status": interface.get("Status"),
                },
            )

    def delete_network_interface(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "ec2", "delete_network_interface", NetworkInterfaceId=resource.resource_id)

    # Messaging

    def list_queues(self) -> Iterator[ResourceDescriptor]:
        sqs = self.client("sqs")
        for queue_url in self._paginate("sqs", "list_queues", "QueueUrls"):
            attributes = sqs.get_queue_attributes(
                QueueUrl=queue_url, AttributeNames=["CreatedTimestamp", "QueueArn"]
            ).get("Attributes", {})
            created = attributes.get("CreatedTimestamp")
            yield ResourceDescriptor(
                resource_type="aws_sqs_queue",
                resource_id=queue_url,
                arn=attributes.get("QueueArn"),
                name=queue_url.rsplit("/", 1)[-1],
                tags=sqs.list_queue_tags(QueueUrl=queue_url).get("Tags", {}),
                created_at=datetime.fromtimestamp(int(created), tz=timezone.utc) if created else None,
            )

    def delete_queue(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "sqs", "delete_queue", QueueUrl=resource.resource_id)

    def list_topics(self) -> Iterator[ResourceDescriptor]:
        sns = self.client("sns")
        for topic in self._paginate("sns", "list_topics", "Topics"):
            arn = topic["TopicArn"]
            yield ResourceDescriptor(
                resource_type="aws_sns_topic",
                resource_id=arn,
                arn=arn,
                name=arn.split(":")[-1],
                tags=tags_to_dict(sns.list_tags_for_resource(ResourceArn=arn).get("Tags")),
            )

    def delete_topic(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "sns", "delete_topic", TopicArn=resource.resource_id)

    # Compute and storage services

    def list_lambda_functions(self) -> Iterator[ResourceDescriptor]:
        lambda_client = self.client("lambda")
        for function in self._paginate("lambda", "list_functions", "Functions"):
            arn = function["FunctionArn"]
            yield ResourceDescriptor(
                resource_type="aws_lambda_function",
                resource_id=function["FunctionName"],
                arn=arn,
                name=function["FunctionName"],
                tags=lambda_client.list_tags(Resource=arn).get("Tags", {}),
                attributes={"SubnetIds": function.get("VpcConfig", {}).get("SubnetIds", [])},
            )

    def delete_lambda_function(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "lambda", "delete_function", FunctionName=resource.resource_id)

    def list_tables(self) -> Iterator[ResourceDescriptor]:
        dynamodb = self.client("dynamodb")
        for table_name in self._paginate("dynamodb", "list_tables", "TableNames"):
            table = dynamodb.describe_table(TableName=table_name)["Table"]
            arn = table["TableArn"]
            yield ResourceDescriptor(
                resource_type="aws_dynamodb_table",
                resource_id=table_name,
                arn=arn,
                name=table_name,
                tags=tags_to_dict(dynamodb.list_tags_of_resource(ResourceArn=arn).get("Tags")),
                created_at=table.get("CreationDateTime"),
                attributes={"Status": table.get("TableStatus")},
            )

    def delete_table(self, resource: ResourceDescriptor) -> None:
        self._call_delete(resource, "dynamodb", "delete_table", TableName=resource.resource_id)

    # IAM

    def list_roles(self) -> Iterator[ResourceDescriptor]:
        iam = self.client("iam")
        for role in self._paginate("iam", "list_roles", "Roles"):
            # Service-linked roles are owned by AWS services
            if role.get("Path", "/").startswith("/aws-service-role/"):
                continue
            yield ResourceDescriptor(
                resource_type="aws_iam_role",
                resource_id=role["RoleName"],
                arn=role.get("Arn"),
                name=role["RoleName"],
                tags=tags_to_dict(iam.list_role_tags(RoleName=role["RoleName"]).get("Tags")),
                created_at=role.get("CreateDate"),
            )

    def delete_role(self, resource: ResourceDescriptor) -> None:
        role_name = resource.resource_id
        try:
            for policy in self._paginate("iam", "list_attached_role_policies", "AttachedPolicies", RoleName=role_name):
                self._call_delete(
                    resource, "iam", "detach_role_policy", RoleName=role_name, PolicyArn=policy["PolicyArn"]
                )
            for policy_name in self._paginate("iam", "list_role_policies", "PolicyNames", RoleName=role_name):
                self._call_delete(resource, "iam", "delete_role_policy", RoleName=role_name, PolicyName=policy_name)
            for profile in self._paginate(
                "iam", "list_instance_profiles_for_role", "InstanceProfiles", RoleName=role_name
            ):
                self._call_delete(
                    resource,
                    "iam",
                    "remove_role_from_instance_profile",
                    RoleName=role_name,
                    InstanceProfileName=profile["InstanceProfileName"],
                )
        except ClientError as e:
            if client_error_code(e) in NOT_FOUND_CODES:
                logger.info(f"Resource {role_name} already deleted")
                return
            raise to_deletion_error(e) from e

        self._call_delete(resource, "iam", "delete_role", RoleName=role_name)


def register_aws_resources(
    catalog: ResourceCatalog,
    session: Optional[boto3.Session] = None,
    region: Optional[str] = None,
    profile: Optional[str] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> AwsResources:
    """Register every supported AWS resource type in a catalog.

    Args:
        catalog: Catalog to register into
        session: boto3 session (optional)
        region: AWS region (optional)
        profile: AWS profile name (optional)
        max_retries: Maximum attempts for each API request

    Returns:
        The AwsResources instance backing the registrations
    """
    resources = AwsResources(session=session, region=region, profile=profile, max_retries=max_retries)

    for resource_type, (list_method, delete_method, depends_on) in AWS_RESOURCE_TYPES.items():
        catalog.register(
            resource_type,
            lister=getattr(resources, list_method),
            deleter=getattr(resources, delete_method),
            depends_on=depends_on,
        )

    return resources
