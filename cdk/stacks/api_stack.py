from aws_cdk import (
    Stack,
    Duration,
    BundlingOptions,
    CfnOutput,
    aws_apigateway as apigw,
    aws_lambda as _lambda,
    aws_logs as logs,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

class ApiStack(Stack):
    def __init__(self, scope: Construct, construct_id: str,
                 github_owner: str,
                 github_repo: str,
                 email_file_path: str = "subscribers.txt",
                 cors_enabled: bool = True,
                 max_write_attempts: int = 1,
                 enable_xray: bool = True,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Token value is set out of band: aws secretsmanager put-secret-value
        token_secret = secretsmanager.Secret(self, "GitHubToken",
                                             description="GitHub token with contents:write on the subscriber repo")

        runtime = _lambda.Runtime.PYTHON_3_12

        # requests is not part of the Lambda runtime, so vendor requirements.txt into the asset
        code = _lambda.Code.from_asset("../functions",
                                       bundling=BundlingOptions(
                                           image=runtime.bundling_image,
                                           command=["bash", "-c",
                                                    "pip install -r requirements.txt -t /asset-output && cp -au . /asset-output"]))

        subscribe_fn = _lambda.Function(self, "SubscribeFn",
                                        runtime=runtime,
                                        handler="subscribe.handler",
                                        code=code,
                                        environment={
                                            "GITHUB_TOKEN_SECRET_ARN": token_secret.secret_arn,
                                            "GITHUB_OWNER": github_owner,
                                            "GITHUB_REPO": github_repo,
                                            "EMAIL_FILE_PATH": email_file_path,
                                            "CORS_ENABLED": "true" if cors_enabled else "false",
                                            "MAX_WRITE_ATTEMPTS": str(max_write_attempts),
                                        },
                                        timeout=Duration.seconds(10),
                                        tracing=_lambda.Tracing.ACTIVE if enable_xray else _lambda.Tracing.DISABLED,
                                        log_retention=logs.RetentionDays.TWO_WEEKS)

        token_secret.grant_read(subscribe_fn)

        # API Gateway
        api = apigw.RestApi(self, "HttpApi",
                            deploy_options=apigw.StageOptions(metrics_enabled=True, logging_level=apigw.MethodLoggingLevel.INFO, tracing_enabled=enable_xray),
                            cloud_watch_role=True)

        # /api/subscribe; the function answers pre-flight itself so CORS stays one setting
        subscribe = api.root.add_resource("api").add_resource("subscribe")
        subscribe_lambda_integration = apigw.LambdaIntegration(subscribe_fn, proxy=True)
        subscribe.add_method("POST", subscribe_lambda_integration)
        subscribe.add_method("OPTIONS", subscribe_lambda_integration)

        self.api_execute_url = f"{api.url}"
        self.token_secret_arn = token_secret.secret_arn

        CfnOutput(self, "SubscribeUrl", value=f"{api.url}api/subscribe")
        CfnOutput(self, "TokenSecretArn", value=token_secret.secret_arn)
