import logging
from typing import Dict, Optional, Tuple

from aws_cdk import (
    Stack,
    RemovalPolicy,
    CfnOutput,
    aws_s3 as s3,
    aws_dynamodb as dynamodb,
    aws_lambda as _lambda,
    aws_apigateway as apigw,
)
from constructs import Construct

from budget_tracker.config import StackConfig
from budget_tracker.descriptors import LogicalTable, ResourceDescriptor
from budget_tracker.revisions import Revision, profile_for
from budget_tracker.routing import RoutingComposer

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "default-user"


class BudgetTrackerStack(Stack):
    # Steps run in order: bucket -> function -> authorizer -> tables -> routes.

    def __init__(self, scope: Construct, construct_id: str, config: Optional[StackConfig] = None, **kwargs) -> None:
        config = config or StackConfig()
        if "env" not in kwargs and (config.account or config.region):
            kwargs["env"] = config.env
        super().__init__(scope, construct_id, **kwargs)

        self.config = config
        self.profile = profile_for(self.config.revision, self.config.include_balance_report)
        self.logical_tables: Dict[str, LogicalTable] = {table.id: table for table in self.profile.tables}
        self.tables: Dict[str, dynamodb.Table] = {}
        self.function_url: Optional[_lambda.FunctionUrl] = None
        self.authorizer: Optional[apigw.TokenAuthorizer] = None
        self.api: Optional[apigw.RestApi] = None
        self.routes: Optional[RoutingComposer] = None
        self._resources = []

        logger.info("assembling %s (revision %s)", construct_id, self.profile.revision.value)

        # 1. S3: staging bucket for the function artifact
        self.bucket = self.create_artifact_bucket()

        # 2. Lambda: the single function behind every route and grant
        self.function = self.create_function(self.bucket)

        # 3. Token authorizer, reusing the same function
        if self.profile.authorizer:
            self.authorizer = self.create_authorizer(self.function)

        # 4. DynamoDB tables, each granted to the function
        for table in self.profile.tables:
            self.tables[table.id] = self.create_table(table, self.function)

        # 5. API Gateway routing tree
        if self.profile.gateway:
            self.api = self.create_api(self.function, self.authorizer)

    @property
    def resources(self) -> Tuple[ResourceDescriptor, ...]:
        return tuple(self._resources)

    def describe(self) -> Tuple[ResourceDescriptor, ...]:
        return self.resources

    def _record(self, kind: str, name: str, **attributes) -> None:
        descriptor = ResourceDescriptor.of(kind, name, **attributes)
        logger.info("declared %s %s", kind, name)
        self._resources.append(descriptor)

    def create_artifact_bucket(self) -> s3.Bucket:
        bucket_name = self.config.bucket_name
        bucket = s3.Bucket(
            self, f"{self.config.prefix}Bucket",
            bucket_name=bucket_name,
            removal_policy=RemovalPolicy.DESTROY,
            auto_delete_objects=True,
        )
        self._record("ArtifactStore", bucket_name, removal_policy="destroy")
        return bucket

    def function_environment(self) -> Dict[str, str]:
        environment = {f"{table.id.upper()}_TABLE": table.id for table in self.profile.tables}
        if self.profile.default_user_id:
            environment["DEFAULT_USER_ID"] = self.config.default_user_id or DEFAULT_USER_ID
        return environment

    def create_function(self, bucket: s3.IBucket) -> _lambda.Function:
        function_name = self.config.function_name
        environment = self.function_environment()
        function = _lambda.Function(
            self, function_name,
            function_name=function_name,
            runtime=self.config.lambda_runtime,
            code=_lambda.Code.from_bucket(bucket, self.config.artifact_key),
            handler=self.config.handler,
            environment=environment,
        )
        self._record(
            "ComputePrincipal", function_name,
            artifact=f"{self.config.bucket_name}/{self.config.artifact_key}",
            handler=self.config.handler,
            runtime=self.config.runtime,
            environment=",".join(sorted(environment)),
        )

        if self.profile.function_url:
            self.function_url = _lambda.FunctionUrl(
                self, f"{self.config.prefix}LambdaUrl",
                function=function,
                auth_type=_lambda.FunctionUrlAuthType.NONE,
            )
            CfnOutput(
                self, "LambdaFunctionUrl",
                value=self.function_url.url,
                description="The URL of the Lambda Function",
            )
            self._record("FunctionUrl", f"{self.config.prefix}LambdaUrl", auth_type="NONE")

        return function

    def create_authorizer(self, function: _lambda.IFunction) -> apigw.TokenAuthorizer:
        name = f"{self.config.prefix}Authorizer"
        authorizer = apigw.TokenAuthorizer(self, name, handler=function)
        self._record("TokenAuthorizer", name, handler=self.config.function_name)
        return authorizer

    def create_table(self, table: LogicalTable, function: _lambda.IFunction) -> dynamodb.Table:
        sort_key = None
        if table.sort_key_name:
            sort_key = dynamodb.Attribute(name=table.sort_key_name, type=dynamodb.AttributeType.STRING)

        resource = dynamodb.Table(
            self, table.id,
            table_name=table.id,
            partition_key=dynamodb.Attribute(
                name=table.partition_key_name,
                type=dynamodb.AttributeType.STRING,
            ),
            sort_key=sort_key,
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=RemovalPolicy.DESTROY,
        )

        for index in table.secondary_indexes:
            index_sort_key = None
            if index.sort_key_name:
                index_sort_key = dynamodb.Attribute(
                    name=index.sort_key_name,
                    type=index.sort_key_type.to_attribute_type(),
                )
            resource.add_global_secondary_index(
                index_name=index.index_name,
                partition_key=dynamodb.Attribute(
                    name=index.partition_key_name,
                    type=index.partition_key_type.to_attribute_type(),
                ),
                sort_key=index_sort_key,
            )

        # Covers the indexes as well
        resource.grant_read_write_data(function)

        self._record(
            "Table", table.id,
            partition_key=table.partition_key_name,
            sort_key=table.sort_key_name or "",
            indexes=",".join(index.index_name for index in table.secondary_indexes),
            grantee=self.config.function_name,
        )
        return resource

    def create_api(self, function: _lambda.IFunction, authorizer: Optional[apigw.IAuthorizer]) -> apigw.RestApi:
        name = f"{self.config.prefix}Api"
        if self.profile.revision is Revision.GATEWAY_WITH_AUTH and not self.config.include_balance_report:
            logger.warning("GET /reports/balance is not part of the %s route table", self.profile.revision.value)

        self.routes = RoutingComposer(self.profile.default_policy, authorizer)
        for route in self.profile.routes:
            self.routes.add_route(route.path, route.verb, route.policy)

        api = apigw.RestApi(self, name, rest_api_name=f"{self.config.prefix} API")
        integration = apigw.LambdaIntegration(function)
        self.routes.bind(api.root, integration)

        self._record(
            "RestApi", name,
            default_policy=self.profile.default_policy.value,
            methods=len(self.routes.bindings()),
        )
        return api
