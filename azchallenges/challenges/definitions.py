"""Built-in challenges, in the order they are presented."""

from uuid import UUID

from ..config import CatalogConfig
from ..inspector.base import Comparison, ResourceKind
from ..storage.progress import ProgressField
from .types import ChallengeDefinition, ChallengeKind, Section
from .validators import (
    AcknowledgeCheck,
    AnswerCheck,
    ConfigurationCheck,
    ResourceCheck,
    SecretCheck,
    SubscriptionCheck,
)

SUBSCRIPTION_CHALLENGE_ID = UUID("ad713b6f-0f21-4889-95ee-222ef1302735")

_SUB = (ProgressField.SUBSCRIPTION_ID,)
_GROUP = _SUB + (ProgressField.RESOURCE_GROUP,)
_STORAGE = _GROUP + (ProgressField.STORAGE_ACCOUNT,)
_KEY_VAULT = _GROUP + (ProgressField.KEY_VAULT,)
_SQL = _GROUP + (ProgressField.SQL_SERVER,)
_APP = _GROUP + (ProgressField.APP_SERVICE,)
_VNET = _GROUP + (ProgressField.VIRTUAL_NETWORK,)
_CORE = _GROUP + (ProgressField.SQL_SERVER, ProgressField.STORAGE_ACCOUNT, ProgressField.KEY_VAULT)
_NETWORKED = _CORE + (ProgressField.VIRTUAL_NETWORK,)

_YES_NO = ("Yes", "No")
_SUBNET = "/virtualNetworks/{virtual_network}/subnets/default"
_BLOB_DATA_CONTRIBUTOR = "ba92f5b4-2d11-453d-a403-e96b0029c9fe"
_CONNECTED = "Excellent! If you go back to your website it should show that it can connect successfully now."


def _not_configured(resource: str) -> str:
    return f"{resource} is not configured correctly"


def _yes(reply: str = "Success!") -> AnswerCheck:
    return AnswerCheck(answers={"Yes": reply})


def resource_group_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.RESOURCE_GROUP
    return [
        ChallengeDefinition(
            id=SUBSCRIPTION_CHALLENGE_ID,
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Subscription",
            description="Before you create the Resource Group that will contain resources for the challenges, "
                        "you should determine which Subscription it will live under.",
            statement="What is the Subscription Id that you want to use?",
            hint="It's best to use a 'development' subscription, this means you'll have access to "
                 "create/update resources and benefit from dev/test pricing.",
            validator=SubscriptionCheck(),
            records=ProgressField.SUBSCRIPTION_ID,
        ),
        ChallengeDefinition(
            id=UUID("6e224d1a-40f2-48c7-bf38-05b47962cddf"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Create",
            description="Resource Groups are required when you want to provision a resource, they often are used "
                        "to group a system's resources together. Go and create a Resource Group in the Subscription "
                        "you specified earlier. You can also specify its Location which represents an Azure data "
                        "centre (take note of this for when the resources are provisioned).",
            statement="What is the name of the Resource Group you've created?",
            validator=ResourceCheck(resource_kind=ResourceKind.RESOURCE_GROUP, label="resource group"),
            requires=_SUB,
            records=ProgressField.RESOURCE_GROUP,
        ),
        ChallengeDefinition(
            id=UUID("23aca336-d1c4-4b66-806c-cddb6629f5a0"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Quiz",
            description="Resource Groups sit just below Subscriptions in the resource hierarchy, and below "
                        "Resource Groups are the Azure resources themselves.",
            statement="What does a Subscription sit below in the resource hierarchy?",
            quiz_options=("Storage Account", "Management Group", "Tenant", "The sky"),
            validator=AnswerCheck(answers={
                "Tenant": "That's right! When you login with 'AD auth' to a system it will be going through a "
                          "Tenant which helps manage the Azure Active Directory instance, usually this is to access "
                          "resources that happen to live within that Tenant but that doesn't always have to be the case.",
            }),
            requires=_GROUP,
        ),
    ]


def storage_account_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.STORAGE_ACCOUNT
    error = _not_configured("Storage Account")

    def storage_check(path: str, expected, success: str = "Success!") -> ConfigurationCheck:
        return ConfigurationCheck(
            resource_kind=ResourceKind.STORAGE_ACCOUNT,
            target=ProgressField.STORAGE_ACCOUNT,
            property_path=path,
            expected=expected,
            error_message=error,
            success_message=success,
        )

    return [
        ChallengeDefinition(
            id=UUID("15202bbe-94ad-4ebf-aa15-ed93b5cef11e"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Create",
            description="Storage Accounts are a cost-effective (mostly) way of storing lots of files (called blobs), "
                        "but also support other services like Files, Queues and (nosql) Tables.",
            statement="Create a Storage Account in your Resource Group. What is the name of the Storage Account?",
            hint="Try to keep your resources in the same Location as the Resource Group, and don't worry too much "
                 "about the various options when creating a Storage Account, we'll configure them in the next set "
                 "of challenges.",
            validator=ResourceCheck(resource_kind=ResourceKind.STORAGE_ACCOUNT, label="Storage Account"),
            requires=_GROUP,
            records=ProgressField.STORAGE_ACCOUNT,
        ),
        ChallengeDefinition(
            id=UUID("94fbda2b-b310-484f-960a-b7ac804aea1e"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Secure Transfer",
            description="In general, all requests to a service should be over HTTPS, especially if we're dealing "
                        "with sensitive data which we may be storing on the Storage Account.",
            statement="Enable 'Secure transfer required' on the Storage Account.",
            validator=storage_check("properties.supportsHttpsTrafficOnly", True),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("23bd7ee0-ab51-4a91-a4dc-ddb5f4cf4877"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="TLS1.2",
            description="While we are only allowing HTTPS connections, we should also be using TLS1.2 at a minimum. "
                        "We can enforce this on the Storage Account.",
            statement="Make sure the minimum TLS version is configured as '1.2' on the Storage Account.",
            validator=storage_check(
                "properties.minimumTlsVersion",
                "TLS1_2",
                success="Depending on how you provisioned the Storage Account, you may have noticed you couldn't "
                        "create it unless you specified TLS 1.2. Our Azure Policy prevents most services from being "
                        "provisioned or updated unless TLS 1.2 is set.",
            ),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("ab8c1780-738a-49d2-9474-db6a01865c99"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Public Blob access",
            description="Rarely would we have files publicly accessible, specifically 'anonymously' accessible. "
                        "Even though we can mark our containers as 'private', it doesn't stop someone from changing "
                        "it or creating a public container or file.",
            statement="Disable 'Allow Public blob access' on the Storage Account.",
            validator=storage_check(
                "properties.allowBlobPublicAccess",
                False,
                success="Success! If we need files to be publicly accessible, we should consider the use case "
                        "and sensitivity of the files.",
            ),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("50354c41-a4ce-4090-8f64-db87c2e539cb"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Public Network Access",
            description="Even if we don't allow blobs to be publicly (i.e. anonymously) accessible, its still "
                        "possible to connect to a Storage Account from anywhere in the world by default. There is "
                        "a flag that allows you to disable any public network access, which means connections can "
                        "only be made from within a virtual network.",
            statement="We'll leave this flag disabled for now and come back to it later. Is that OK with you?",
            quiz_options=("Yes", "No", "Nah yeah"),
            validator=AnswerCheck(answers={"Yes": "Success!", "Nah yeah": "Success!"}),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("c39e95d7-daaf-4635-9ecb-9a78cafff9b8"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Shared Account Key access",
            description="By default Storage Accounts can be accessed with a Shared Access Key. To avoid handing out "
                        "the full connection string of a Storage Account, we can configure AD-only auth to it.",
            statement="Disable 'Allow storage account key access' on the Storage Account.",
            validator=storage_check("properties.allowSharedKeyAccess", False),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("fab1e5f0-e14a-4593-b672-aa9b41c153b6"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Challenge prep",
            description="In preparation for future challenges, create another Storage Account that we'll use to "
                        "store logs. Unlike the Storage Account you've just configured, make sure that 'Shared "
                        "Access Key' and 'Public Network Access' are both allowed/enabled for this new one, and "
                        "that it's located in the same region as the original Storage Account.",
            statement="Have you created this new 'log' Storage Account?",
            quiz_options=("Yes", "No", "Maybe", "I don't know"),
            validator=_yes(),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("a0a62f76-77cb-4cde-b2b0-c54da6ac00eb"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Diagnostic settings",
            description="Several Azure resources support 'Diagnostic Settings' which allow you to log operations "
                        "against the resource, so you can audit who accessed it and when. With the Shared Access "
                        "Key disabled (which means it requires AD Auth), this can be correlated to an identity.",
            statement="Configure the Diagnostic Settings for 'blob' on your original Storage Account with "
                      "'StorageRead', 'StorageWrite' and 'StorageDelete' enabled, pointing to your new 'log' "
                      "Storage Account.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.STORAGE_BLOB_DIAGNOSTICS,
                target=ProgressField.STORAGE_ACCOUNT,
                property_path="value[].properties.logs[enabled=true].category",
                expected=["StorageRead", "StorageWrite", "StorageDelete"],
                comparison=Comparison.INCLUDES,
                error_message=error,
            ),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("c9ceb040-3e34-4b4b-a655-9634b522490c"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Quiz",
            description="Upload a random file to the original Storage Account (you'll need to create a Container "
                        "first), then check the 'log' Storage Account to see the results. Note it may take a few "
                        "minutes for the logs to appear, and they are not stored in the '$logs' container.",
            statement="What is the file extension of the log files?",
            hint="You can access your original Storage Account via the Azure Portal or the Azure Storage Explorer. "
                 "Or even via the command line if you're feeling adventurous.",
            validator=AnswerCheck(answers={"json": "Success!"}, case_sensitive=False),
            requires=_STORAGE,
        ),
        ChallengeDefinition(
            id=UUID("e3f14e1d-4c92-4ce7-b7c2-eaeba5710aa6"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Quiz",
            description="The three operations that we're monitoring (read, write and delete) each have their own "
                        "container. Find the log file for the 'write' operation, which will contain information "
                        "about the file you uploaded.",
            statement="What is the 'operationName' used for when you uploaded the file?",
            validator=AnswerCheck(answers={"PutBlob": "Success!"}, case_sensitive=False),
            requires=_STORAGE,
        ),
    ]


def key_vault_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.KEY_VAULT
    error = _not_configured("Key Vault")
    return [
        ChallengeDefinition(
            id=UUID("59159eab-8a58-484a-880a-fc787a00cdfc"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Create",
            description="Key Vaults are a useful way of securely storing secrets, as well as certificates and "
                        "signing keys. You can control who can access what, i.e. you can read a secret but you "
                        "can't update it.",
            statement="Create a Key Vault in your Resource Group. What is its name?",
            hint="For the purpose of these challenges, make sure it's created with the 'vault access policy' "
                 "(which is the default).",
            validator=ResourceCheck(resource_kind=ResourceKind.KEY_VAULT, label="Key Vault"),
            requires=_GROUP,
            records=ProgressField.KEY_VAULT,
        ),
        ChallengeDefinition(
            id=UUID("93e5852f-c668-4764-a6d5-6ec977054628"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Diagnostic settings",
            description="The same as Storage Accounts, configuring Diagnostic Settings on a Key Vault allows you "
                        "to see the full set of requests and operations against it, including who accessed what "
                        "secret and when.",
            statement="Configure the Diagnostic Settings on the Key Vault to your 'log' Storage Account, with "
                      "'audit' and 'allLogs' enabled.",
            hint="It may take a little bit for the logs to appear in the Storage Account, don't worry too much "
                 "about it, you can look at them later.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.KEY_VAULT_DIAGNOSTICS,
                target=ProgressField.KEY_VAULT,
                property_path="value[].properties.logs[enabled=true].categoryGroup",
                expected=["audit", "allLogs"],
                comparison=Comparison.INCLUDES,
                error_message=error,
            ),
            requires=_KEY_VAULT,
        ),
        ChallengeDefinition(
            id=UUID("b93ec8ad-17d1-46c7-817e-db7d2b76125d"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Assign user",
            description="By creating the Key Vault you get full access to it, however generally you should grant "
                        "yourself and whoever needs access limited read-only permissions.",
            statement=f"Assign the '{config.website_principal_name}' user to your Key Vault only with Secret "
                      f"'Get' and 'List' permissions.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.KEY_VAULT,
                target=ProgressField.KEY_VAULT,
                property_path=f"properties.accessPolicies[objectId={config.website_principal_object_id}]"
                              f".permissions.secrets",
                expected=["get", "list"],
                comparison=Comparison.INCLUDES,
                error_message=error,
            ),
            requires=_KEY_VAULT,
        ),
        ChallengeDefinition(
            id=UUID("c19e0669-a94d-4056-851a-ad7147292c8b"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Secrets",
            description="A 'secret' at a basic level is identified by a Name and contains a secret Value. A secret "
                        "can have many versions (though you would usually only use the latest), and you can "
                        "configure expiration, content type, even when the secret becomes activated.",
            statement="Generate a Secret with 'super-secret' as the Name and any Value that you want, which the "
                      "website will retrieve now that you've given it access.",
            validator=SecretCheck(secret_name="super-secret", error_message=error),
            requires=_KEY_VAULT,
        ),
        ChallengeDefinition(
            id=UUID("a5da83f2-47ab-4db5-9c33-2a529190220c"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Quiz",
            statement="What is the text on the button that allows you to view the Secret's Value in the Azure portal?",
            validator=AnswerCheck(answers={"show secret value": "Success!"}, case_sensitive=False),
            requires=_KEY_VAULT,
        ),
        ChallengeDefinition(
            id=UUID("d4b7e2a1-6c3f-4e8a-9b15-2f7c0a9e4d63"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Public Network Access",
            description="Similar to the Storage Account, it is possible to restrict access to the Key Vault to "
                        "only over a virtual network.",
            statement="But again we'll leave this flag disabled for now, OK?",
            quiz_options=_YES_NO,
            validator=_yes(),
            requires=_KEY_VAULT,
        ),
    ]


def sql_server_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.SQL_SERVER
    error = _not_configured("SQL Server")
    return [
        ChallengeDefinition(
            id=UUID("60730b90-d133-43be-9e5a-1c181a24f921"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Create",
            description="SQL Server stores pools and databases.",
            statement="Create a SQL Server in your Resource Group. What is its name?",
            hint="You won't be able to create a SQL Server via the Azure Portal because of our Azure Policy, "
                 "use the command line instead.",
            validator=ResourceCheck(resource_kind=ResourceKind.SQL_SERVER, label="Sql Server"),
            requires=_GROUP,
            records=ProgressField.SQL_SERVER,
        ),
        ChallengeDefinition(
            id=UUID("3153aaa4-6cb3-4688-a13c-6d5da6db12ca"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="TLS1.2",
            description="We should at a minimum be using TLS 1.2.",
            statement="Set the minimum TLS version of your SQL Server to '1.2'.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.SQL_SERVER,
                target=ProgressField.SQL_SERVER,
                property_path="properties.minimalTlsVersion",
                expected="1.2",
                error_message=error,
            ),
            requires=_SQL,
        ),
        ChallengeDefinition(
            id=UUID("fd64f4d9-43ac-43ca-b22e-933320bc4623"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Auditing",
            description="With Auditing on SQL Server, it is possible to see every query made against databases on "
                        "the server, including by who, when and how long the query took to run.",
            statement="Configure Auditing on your SQL Server, pointing to your 'log' Storage Account.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.SQL_SERVER_AUDITING,
                target=ProgressField.SQL_SERVER,
                property_path="properties.state",
                expected="Enabled",
                error_message=error,
            ),
            requires=_SQL,
        ),
        ChallengeDefinition(
            id=UUID("33e20f16-68d2-431f-9691-91a95a5105d4"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="IP Restriction",
            description="By default SQL Server will block all incoming requests unless you allow them via IP "
                        "Restrictions, virtual networks or allowing all Azure resources.",
            statement="Configure an IP Restriction on your SQL Server with any IP (i.e. your work or home IP).",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.SQL_SERVER_FIREWALL_RULES,
                target=ProgressField.SQL_SERVER,
                property_path="value[properties.startIpAddress!=0.0.0.0].name",
                comparison=Comparison.PRESENT,
                error_message=error,
            ),
            requires=_SQL,
        ),
        ChallengeDefinition(
            id=UUID("ac5e0f0e-87e7-4c5c-a4f5-342e95e1f2b6"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Allowing Azure Resources",
            description="If we just had an IP restriction to connect via the office, services like an App Service "
                        "will fail to connect to the SQL Server. We'll go through a couple of ways to connect "
                        "securely later, but for now we'll just allow any Azure resource to connect.",
            statement="Configure the 'Allow Azure services and resources to access this server' exception on "
                      "your SQL Server.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.SQL_SERVER_FIREWALL_RULES,
                target=ProgressField.SQL_SERVER,
                property_path="value[name=AllowAllWindowsAzureIps].properties.startIpAddress",
                expected="0.0.0.0",
                error_message=error,
            ),
            requires=_SQL,
        ),
        ChallengeDefinition(
            id=UUID("0533517c-d2d4-4c48-86e4-19e7d11de4d8"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Query the master database",
            description="Since you've added an IP Restriction so that you can connect to SQL Server, you can now "
                        "query it to see the auditing logs that are generated.",
            statement="Connect to the SQL Server however you want and run any query you want. Have you run the query?",
            hint="The query could just be getting the current time of the SQL Server, it doesn't matter as long "
                 "as it's run.",
            quiz_options=_YES_NO,
            validator=_yes("Well done!"),
            requires=_SQL,
        ),
        ChallengeDefinition(
            id=UUID("c1b75b2e-f606-4193-be84-46a7fb126c1c"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Quiz",
            statement="What is the file extension of the SQL audit log files?",
            validator=AnswerCheck(answers={"xel": "Success!"}, case_sensitive=False),
            requires=_SQL,
        ),
        ChallengeDefinition(
            id=UUID("8e3a5c17-2b94-4f0d-a6e1-7c9d3b5f2a08"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Optional Quiz - Inspect audit log",
            description="If you have SQL Server Management Studio (SSMS) installed you can view the audit log file. "
                        "By default it only shows the 'name' and 'timestamp' columns, you can choose which columns "
                        "appear including 'statement' which is the actual SQL query that was run.",
            statement="What is the 'action_name' of the query you ran? Use 'who knows' if you'd like to skip this "
                      "challenge.",
            validator=AnswerCheck(
                answers={"BATCH COMPLETED": "Nice work!", "who knows": "Success!"},
                case_sensitive=False,
            ),
            requires=_SQL,
        ),
    ]


def app_service_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.APP_SERVICE
    error = _not_configured("App Service")

    def site_check(kind: ResourceKind, path: str, expected=True, **extra) -> ConfigurationCheck:
        return ConfigurationCheck(
            resource_kind=kind,
            target=ProgressField.APP_SERVICE,
            property_path=path,
            expected=expected,
            error_message=extra.pop("error_message", error),
            **extra,
        )

    return [
        ChallengeDefinition(
            id=UUID("cc194d7d-4866-46f9-b8f7-a193bd7f3810"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Create",
            description="App Services allow us to host websites and run background jobs.",
            statement="Create an App Service on Basic tier and without Application Insights. What is the name of "
                      "the App Service?",
            validator=ResourceCheck(resource_kind=ResourceKind.APP_SERVICE, label="App Service"),
            requires=_GROUP,
            records=ProgressField.APP_SERVICE,
        ),
        ChallengeDefinition(
            id=UUID("129ad12d-6e94-4ac6-bc3f-efc2c2c5c5d5"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="HTTPS Only",
            description="Regardless if we're using the App Service as a website or a webjob runner, we should "
                        "always be using HTTPS.",
            statement="Make sure the 'HTTPS Only' flag is enabled.",
            validator=site_check(ResourceKind.APP_SERVICE, "properties.httpsOnly"),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("89d7bafc-d52b-4c3c-9a5d-2bfd4cb21e2e"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Always On",
            description="If we're paying for the App Service regardless if it's actively used or not, we should "
                        "have 'Always On' enabled, this improves cold start time for accessing the website and "
                        "deployments.",
            statement="Make sure the 'Always On' flag is enabled.",
            validator=site_check(ResourceKind.APP_SERVICE_CONFIG, "properties.alwaysOn"),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("75f2e941-a8f2-4e35-8a0b-f0ef43a8b8bd"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="TLS 1.2",
            description="Should always be using TLS 1.2 at least.",
            statement="Make sure the minimum TLS version is configured as '1.2'.",
            validator=site_check(
                ResourceKind.APP_SERVICE_CONFIG,
                "properties.minTlsVersion",
                "1.2",
                success_message="Even with our Azure Policy for TLS 1.2, any newly created App Service will "
                                "default to TLS 1.2 anyway.",
            ),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("ec4db30e-02f3-48e7-a37b-749587d7a7d2"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="FTP Disabled",
            description="We never use FTP to deploy to an App Service, it should be disabled, or at least only "
                        "allow FTPS.",
            statement="Make sure 'FTP State' is set to 'Disabled'.",
            validator=site_check(ResourceKind.APP_SERVICE_CONFIG, "properties.ftpsState", "Disabled"),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("ab1144b4-951f-4948-908b-996d95dcdef8"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="System assigned Identity",
            description="We don't want to have to manage credentials to services like Storage Accounts or Key "
                        "Vaults, so configure the App Service to have a System assigned identity.",
            statement="Enable the 'System assigned' Identity on the App Service.",
            validator=site_check(
                ResourceKind.APP_SERVICE, "identity.type", "SystemAssigned", comparison=Comparison.CONTAINS
            ),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("2ac3e0e9-0fef-4302-897f-17411684ea51"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="IP Security Restriction",
            description="If the website is only for internal use, we should be IP restricting to your office IP. "
                        "This doesn't replace authentication/authorisation best practices, it's just another "
                        "layer of security.",
            statement="Add an IP Restriction on your App Service (either for the office IP or your home IP).",
            validator=site_check(
                ResourceKind.APP_SERVICE_CONFIG,
                "properties.ipSecurityRestrictions[ipAddress!=Any].ipAddress",
                None,
                comparison=Comparison.PRESENT,
            ),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("f69e66a5-6e89-4229-a6aa-478a53ec7f9a"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="App Service logs",
            description="Though App Services support Diagnostic logs (set up the same as the Storage Account and "
                        "Key Vault), for this challenge we'll look at the 'App Service logs'. This allows us to "
                        "store logs on the App Service's local storage or export to a Storage Account.",
            statement="Configure 'Application logging (Blob)' and 'Web server logging' to your 'log' Storage "
                      "Account. You can put them in 'logs' and 'logs-iis' containers respectively if you want.",
            validator=site_check(
                ResourceKind.APP_SERVICE_LOGS,
                "properties.applicationLogs.azureBlobStorage.sasUrl",
                None,
                comparison=Comparison.PRESENT,
            ),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("ae4d8fc4-f3bc-48aa-8c87-b1ee0be2b495"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Optional - Inspect generated logs",
            description="Navigate to your website a few times and have a look at the IIS logs. These will show "
                        "when a HTTP request is made, the path, response status code and more.",
            statement="Did you inspect the logs?",
            quiz_options=_YES_NO,
            validator=AcknowledgeCheck(success_message="Wonderful!"),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("49b09563-44e6-4203-8f49-cede211d9bba"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="'Connection checker' website configuration",
            description="You have provisioned a couple of services now, let's validate that the App Service can "
                        "connect to them with its identity. Before we deploy the 'Connection checker' website "
                        "you'll need to configure some 'Application settings' on your App Service.",
            statement="Add the following Application settings: StorageAccountName = {your Storage Account name}, "
                      "KeyVaultName = {your Key Vault name}, SqlServerName = {your SQL Server name} and "
                      f"TenantId = {config.tenant_id}. Have you added those settings?",
            quiz_options=_YES_NO,
            validator=AnswerCheck(answers={"Yes": "Excellent!"}, error_message="OK I'll wait"),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("9d2692c6-4c3c-4443-a75a-2ed0584572f6"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="'Connection checker' website upload",
            description="There are various ways to deploy to an App Service, here we'll use the Kudu portal and "
                        "have it deploy our .zip for us.",
            statement="Save the zip, navigate to 'https://<website name here>.scm.azurewebsites.net/ZipDeployUI' "
                      "and drag the zip onto the page. After that's completed navigate to your website "
                      "'https://<website name here>.azurewebsites.net'. You might see some errors but that's OK! "
                      "Are you ready to continue?",
            link="/downloads/ConnectionCheckerWebsite.zip",
            quiz_options=_YES_NO,
            validator=AnswerCheck(answers={"Yes": "OK!"}, error_message=":("),
            requires=_APP,
        ),
        ChallengeDefinition(
            id=UUID("cf1a2b36-95b6-4f22-962a-f38ca9b0d1f0"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Granting App Service access to Storage Account",
            description="In preparation for the next set of challenges, you'll need to grant your App Service "
                        "access to the other resources you've provisioned.",
            statement="Grant your App Service's managed identity the 'Storage Blob Data Contributor' role on your "
                      "Storage Account.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.STORAGE_ROLE_ASSIGNMENTS,
                target=ProgressField.STORAGE_ACCOUNT,
                property_path="value[properties.principalType=ServicePrincipal].properties.roleDefinitionId",
                expected=_BLOB_DATA_CONTRIBUTOR,
                comparison=Comparison.CONTAINS,
                error_message=_not_configured("Storage Account"),
                success_message=_CONNECTED,
            ),
            requires=_APP + (ProgressField.STORAGE_ACCOUNT,),
        ),
        ChallengeDefinition(
            id=UUID("09c5cc76-3c48-4eab-adf2-adf99b446814"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Granting App Service access to Key Vault",
            description="In preparation for the next set of challenges, you'll need to grant your App Service "
                        "access to the other resources you've provisioned.",
            statement="Grant your App Service's managed identity Secret 'Get' and 'List' permissions to your Key Vault.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.KEY_VAULT,
                target=ProgressField.KEY_VAULT,
                property_path=f"properties.accessPolicies[objectId!={config.website_principal_object_id}]"
                              f".permissions.secrets",
                expected=["get", "list"],
                comparison=Comparison.INCLUDES,
                error_message=_not_configured("Key Vault"),
                success_message=_CONNECTED,
            ),
            requires=_APP + (ProgressField.KEY_VAULT,),
        ),
        ChallengeDefinition(
            id=UUID("35e98698-9059-4fbf-b2cf-c37ff23c2d9b"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Granting App Service access to SQL Server",
            description="In preparation for the next set of challenges, you'll need to grant your App Service "
                        "access to the other resources you've provisioned.",
            statement="Set your App Service's managed identity as the Active Directory Admin on your SQL Server.",
            hint="Strictly speaking we shouldn't be assigning the App Service as an Admin on the server, it's "
                 "too much access to all databases on the server, but for now it's OK.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.SQL_SERVER,
                target=ProgressField.SQL_SERVER,
                property_path="properties.administrators.principalType",
                expected="Application",
                error_message=_not_configured("SQL Server"),
                success_message=_CONNECTED,
            ),
            requires=_APP + (ProgressField.SQL_SERVER,),
        ),
    ]


def network_segment_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.NETWORK_SEGMENT
    connect = "Now that the Service Endpoints are enabled, we can join resources to it."
    return [
        ChallengeDefinition(
            id=UUID("19247c68-09a7-4b9a-bc59-fd10186ce546"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Create Virtual Network",
            description="Virtual Networks allow you to simplify how Azure resources are connected. By default "
                        "Azure resources usually connect to each other publicly, but by using Virtual Networks we "
                        "can restrict traffic to resources from our allowed list of IPs and from within that "
                        "Virtual Network.",
            statement="Create a Virtual Network in your Resource Group with a 10.0.0.0/16 'address space' and a "
                      "10.0.0.0/24 'default' subnet. What is your Virtual Network called?",
            validator=ResourceCheck(resource_kind=ResourceKind.VIRTUAL_NETWORK, label="Virtual Network"),
            requires=_GROUP,
            records=ProgressField.VIRTUAL_NETWORK,
        ),
        ChallengeDefinition(
            id=UUID("fa34eecd-28f6-4a9b-85b4-5e0b0040e42d"),
            section=section,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            name="Quiz",
            statement="For the 'default' subnet, what is the 'Available IPs' number?",
            validator=AnswerCheck(answers={"251": "Success!"}, error_message="Sorry that's incorrect"),
            requires=_VNET,
        ),
        ChallengeDefinition(
            id=UUID("202b860e-f21e-49d5-a627-d78e7fc976b9"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Enable Service Endpoints",
            description="Resources like VMs can connect directly to a Virtual Network, however resources like "
                        "Storage Accounts and Key Vaults require Service Endpoints to be able to join a Virtual "
                        "Network and access resources contained within it.",
            statement="On the 'default' subnet, enable the 'Microsoft.KeyVault', 'Microsoft.Sql' and "
                      "'Microsoft.Storage' Service Endpoints.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.VIRTUAL_NETWORK,
                target=ProgressField.VIRTUAL_NETWORK,
                property_path="properties.subnets[name=default].properties.serviceEndpoints[].service",
                expected=["Microsoft.KeyVault", "Microsoft.Sql", "Microsoft.Storage"],
                comparison=Comparison.INCLUDES,
                error_message=_not_configured("Virtual Network"),
            ),
            requires=_VNET,
        ),
        ChallengeDefinition(
            id=UUID("2885cc72-a4c9-4e27-85e9-3645af5634de"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Connect Storage Account to Virtual Network",
            description=connect,
            statement="Connect your Storage Account to the Virtual Network's 'default' subnet.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.STORAGE_ACCOUNT,
                target=ProgressField.STORAGE_ACCOUNT,
                property_path="properties.networkAcls.virtualNetworkRules[].id",
                expected=_SUBNET,
                comparison=Comparison.CONTAINS,
                error_message=_not_configured("Storage Account"),
            ),
            requires=_VNET + (ProgressField.STORAGE_ACCOUNT,),
        ),
        ChallengeDefinition(
            id=UUID("1ca0121b-1ef7-4a3e-b8a7-93c67ce89cfd"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Connect Key Vault to Virtual Network",
            description=connect,
            statement="Connect your Key Vault to the Virtual Network's 'default' subnet.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.KEY_VAULT,
                target=ProgressField.KEY_VAULT,
                property_path="properties.networkAcls.virtualNetworkRules[].id",
                expected=_SUBNET,
                comparison=Comparison.CONTAINS,
                error_message=_not_configured("Key Vault"),
            ),
            requires=_VNET + (ProgressField.KEY_VAULT,),
        ),
        ChallengeDefinition(
            id=UUID("47345b68-5e21-420a-8814-12ba904cd7a0"),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name="Connect SQL Server to Virtual Network",
            description=connect,
            statement="Connect your SQL Server to the Virtual Network's 'default' subnet.",
            validator=ConfigurationCheck(
                resource_kind=ResourceKind.SQL_SERVER_VNET_RULES,
                target=ProgressField.SQL_SERVER,
                property_path="value[].properties.virtualNetworkSubnetId",
                expected=_SUBNET,
                comparison=Comparison.CONTAINS,
                error_message=_not_configured("SQL Server"),
            ),
            requires=_VNET + (ProgressField.SQL_SERVER,),
        ),
    ]


def private_endpoint_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.PRIVATE_ENDPOINT
    wait = "OK I'll wait"
    return [
        ChallengeDefinition(
            id=UUID("642ea46b-bb11-40fa-9dde-ee0f310ab541"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Prepare for Private Endpoints",
            description="Though we can set up a Private Endpoint alongside the Service Endpoints and IP "
                        "restrictions, it's much cooler to disable these and only allow access over the Private "
                        "Endpoint.",
            statement="For your Storage Account, Key Vault and SQL Server, disable 'public access' to them. Have "
                      "you made the changes?",
            quiz_options=_YES_NO,
            validator=AnswerCheck(answers={"Yes": "Well done!"}, error_message=wait),
            requires=_NETWORKED,
        ),
        ChallengeDefinition(
            id=UUID("2c10748b-f339-4ae6-a9c2-3c5d4f11f3e3"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Check your website",
            description="With public access disabled (which removes the Service Endpoint you set up before) your "
                        "website will no longer be able to access the resources.",
            statement="Restart your App Service (this will clear any lingering connections it has to the "
                      "resources). Go to your website and refresh to see that they (shouldn't) connect. Ready to "
                      "fix that?",
            quiz_options=_YES_NO,
            validator=AnswerCheck(answers={"Yes": "Well done!"}, error_message=wait),
            requires=_NETWORKED,
        ),
        ChallengeDefinition(
            id=UUID("326ffc2b-b9c9-4d27-ac94-16308eb8ba55"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Setup Private Endpoints",
            description="There is not much direction for this one, to make the challenge a bit harder.",
            statement="Create Private Endpoints on your Storage Account, Key Vault and SQL Server. Have you set "
                      "those up?",
            hint="You may come across some issues when trying to do this, have a go at understanding what the "
                 "issue is and how to resolve it.",
            quiz_options=_YES_NO,
            validator=AnswerCheck(answers={"Yes": "Well done!"}, error_message=wait),
            requires=_NETWORKED,
        ),
        ChallengeDefinition(
            id=UUID("79efb6b2-13ea-437f-a751-466d412d4212"),
            section=section,
            kind=ChallengeKind.QUIZ,
            name="Check your website again",
            description="It might take a few moments, but your website should now be able to connect.",
            statement="Refresh your website, is it connecting successfully now?",
            quiz_options=_YES_NO,
            validator=AnswerCheck(
                answers={"Yes": "Excellent!"},
                error_message="Other than waiting a moment for things to connect, check the error messages to "
                              "get an idea of what issues it's having.",
            ),
            requires=_NETWORKED,
        ),
    ]


def bonus_challenges(config: CatalogConfig) -> list[ChallengeDefinition]:
    section = Section.BONUS
    statement = "Hit the button to complete the challenge"

    def bonus(
        challenge_id: str, name: str, description: str, hint=None, success: str = "Well done!"
    ) -> ChallengeDefinition:
        return ChallengeDefinition(
            id=UUID(challenge_id),
            section=section,
            kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
            name=name,
            description=description,
            statement=statement,
            hint=hint,
            validator=AcknowledgeCheck(success_message=success),
            requires=_CORE,
        )

    return [
        bonus(
            "caaae38b-0ba9-4594-aa12-4b9b283c32bf",
            "Write your own 'check' website",
            "Have a go creating your own website that shows your App Service can successfully connect to all of "
            "the other resources with its Managed Identity.",
            hint="When testing locally you need to make sure your AD account has access to those services and "
                 "that you can connect to them from your machine.",
        ),
        bonus(
            "015a8a1c-545f-4d93-8126-5d9e3d03291b",
            "Set up an Azure Bastion instance",
            "Azure Bastion is very helpful if you've set up Private Endpoints, an Azure Bastion instance would "
            "allow you to RDP into the Virtual Network and access resources. Have a go at provisioning one in your "
            "Virtual Network, and try to connect to and query your resources.",
        ),
        bonus(
            "f34d4d50-1d6d-48fc-b6db-13af95c01f3e",
            "Set up a Network Security Group",
            "Network Security Groups (NSGs) can be joined to subnets and/or NICs to control requests inbound to "
            "them or outbound from them. Have a go blocking traffic from different sources and destinations.",
        ),
        bonus(
            "7f09ebc9-5e71-441d-a221-d91d1e21f4c6",
            "Set up a peered Virtual Network",
            "Virtual Network peering allows you to join two or more Virtual Networks together. Have a go creating "
            "another Virtual Network with a resource attached (i.e. another Storage Account), peer it to your "
            "original Virtual Network, and try to have your website connect to the new resource.",
        ),
        bonus(
            "97e70a69-6a64-4d47-b85e-eac8cbbcdedd",
            "Clean up your resources",
            "Feel free to play around in your Resource Group, but once you're done it's time to delete everything.",
            success="Well done, and thanks for playing!",
        ),
    ]


def build_definitions(config: CatalogConfig) -> list[ChallengeDefinition]:
    """Build every built-in challenge in presentation order."""
    return [
        *resource_group_challenges(config),
        *storage_account_challenges(config),
        *key_vault_challenges(config),
        *sql_server_challenges(config),
        *app_service_challenges(config),
        *network_segment_challenges(config),
        *private_endpoint_challenges(config),
        *bonus_challenges(config),
    ]
