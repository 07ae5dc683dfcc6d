"""GraphQL documents used against the Spacelift API."""

_HOOKS = """
    afterApply
    beforeApply
    afterInit
    beforeInit
    afterPlan
    beforePlan
    afterPerform
    beforePerform
    afterDestroy
    beforeDestroy
    afterRun
"""

# ---------------------------------------------------------------------------
# Discovery queries
# ---------------------------------------------------------------------------

SPACES_QUERY = """
query Spaces {
  spaces {
    id
    name
    description
    parentSpace
    inheritEntities
    labels
  }
}
"""

STACKS_QUERY = (
    """
query Stacks {
  stacks {
    id
    name
    description
    space
    branch
    repository
    namespace
    projectRoot
    provider
    repositoryURL
    runnerImage
    terraformVersion
    administrative
    autodeploy
    autoretry
    localPreviewEnabled
    protectFromDeletion
    isDisabled
    managesStateFile
    labels
    additionalProjectGlobs
    vendorConfig {
      __typename
      ... on StackConfigVendorTerraform {
        externalStateAccessEnabled
      }
    }
    hooks {"""
    + _HOOKS
    + """    }
    attachedContexts {
      id
      contextId
      priority
    }
    attachedPolicies {
      id
      policyId
    }
    dependsOn {
      id
      dependsOnStack {
        id
      }
    }
  }
}
"""
)

CONTEXTS_QUERY = (
    """
query Contexts {
  contexts {
    id
    name
    description
    space
    labels
    createdAt
    updatedAt
    hooks {"""
    + _HOOKS
    + """    }
    config {
      id
      type
      value
      writeOnly
      description
    }
  }
}
"""
)

POLICIES_QUERY = """
query Policies {
  policies {
    id
    name
    description
    space
    type
    body
    labels
    createdAt
    updatedAt
  }
}
"""

AWS_INTEGRATIONS_QUERY = """
query AWSIntegrations {
  awsIntegrations {
    id
    name
    roleArn
    durationSeconds
    generateCredentialsInWorker
    externalId
    space
    labels
  }
}
"""

AZURE_INTEGRATIONS_QUERY = """
query AzureIntegrations {
  azureIntegrations {
    id
    name
    tenantId
    defaultSubscriptionId
    applicationId
    displayName
    space
    labels
  }
}
"""

AWS_INTEGRATION_ATTACHMENTS_QUERY = """
query AWSIntegrationAttachments($id: ID!) {
  awsIntegration(id: $id) {
    attachedStacks {
      id
      stackId
      isModule
      read
      write
    }
  }
}
"""

AZURE_INTEGRATION_ATTACHMENTS_QUERY = """
query AzureIntegrationAttachments($id: ID!) {
  azureIntegration(id: $id) {
    attachedStacks {
      id
      stackId
      isModule
      read
      write
      subscriptionId
    }
  }
}
"""

# ---------------------------------------------------------------------------
# Stack updates
# ---------------------------------------------------------------------------

ENABLE_EXTERNAL_STATE_ACCESS_MUTATION = """
mutation EnableExternalState(
  $id: ID!
  $administrative: Boolean!
  $branch: String!
  $name: String!
  $repository: String!
) {
  stackUpdate(
    id: $id
    input: {
      administrative: $administrative
      branch: $branch
      name: $name
      repository: $repository
      vendorConfig: { terraform: { externalStateAccessEnabled: true } }
    }
  ) {
    id
  }
}
"""

ENABLE_STACK_MUTATION = """
mutation EnableStack(
  $id: ID!
  $administrative: Boolean!
  $branch: String!
  $name: String!
  $repository: String!
) {
  stackUpdate(
    id: $id
    input: {
      administrative: $administrative
      branch: $branch
      name: $name
      repository: $repository
      isDisabled: false
    }
  ) {
    id
  }
}
"""

# ---------------------------------------------------------------------------
# State transfer
# ---------------------------------------------------------------------------

STATE_DOWNLOAD_URL_MUTATION = """
mutation GetStateDownloadURL($stackId: ID!) {
  stateDownloadUrl(input: { stackId: $stackId }) {
    url
  }
}
"""

STATE_UPLOAD_URL_MUTATION = """
mutation GetStateUploadURL {
  stateUploadUrl {
    url
    objectId
  }
}
"""

STACK_LOCK_MUTATION = """
mutation LockStack($id: ID!) {
  stackLock(id: $id) {
    id
  }
}
"""

STACK_UNLOCK_MUTATION = """
mutation UnlockStack($id: ID!) {
  stackUnlock(id: $id) {
    id
  }
}
"""

IMPORT_MANAGED_STATE_MUTATION = """
mutation ImportManagedState($stackId: ID!, $state: String!) {
  stackManagedStateImport(stackId: $stackId, state: $state)
}
"""
