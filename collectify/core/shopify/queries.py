"""GraphQL documents sent to the Shopify Admin API."""

COLLECTION_CREATE = """
mutation createCollection($input: CollectionInput!) {
  collectionCreate(input: $input) {
    collection {
      id
      title
      handle
      descriptionHtml
      image {
        url
        altText
        width
        height
      }
      seo {
        title
        description
      }
      sortOrder
      ruleSet {
        appliedDisjunctively
        rules {
          column
          relation
          condition
          conditionObject {
            ... on CollectionRuleMetafieldCondition {
              metafieldDefinition {
                id
              }
            }
            ... on CollectionRuleProductCategoryCondition {
              value {
                id
              }
            }
          }
        }
      }
      productsCount {
        count
      }
      createdAt
      updatedAt
    }
    userErrors {
      field
      message
    }
  }
}
"""

COLLECTIONS_PAGE = """
query listCollections($first: Int!, $after: String, $query: String) {
  collections(first: $first, after: $after, query: $query) {
    nodes {
      id
      title
      handle
      descriptionHtml
      updatedAt
      sortOrder
      templateSuffix
      image {
        url
        altText
      }
      seo {
        title
        description
      }
      ruleSet {
        appliedDisjunctively
        rules {
          column
          relation
          condition
          conditionObject {
            ... on CollectionRuleMetafieldCondition {
              metafieldDefinition {
                id
              }
            }
            ... on CollectionRuleProductCategoryCondition {
              value {
                id
              }
            }
          }
        }
      }
      productsCount {
        count
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

COLLECTION_PRODUCT_IDS = """
query collectionProducts($id: ID!, $first: Int!, $after: String) {
  collection(id: $id) {
    products(first: $first, after: $after) {
      edges {
        node {
          id
        }
      }
      pageInfo {
        hasNextPage
        endCursor
      }
    }
  }
}
"""

STAGED_UPLOADS_CREATE = """
mutation stagedUploadsCreate($input: [StagedUploadInput!]!) {
  stagedUploadsCreate(input: $input) {
    stagedTargets {
      url
      resourceUrl
      parameters {
        name
        value
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

# Executed by Shopify once per line of the uploaded JSONL file.
BULK_COLLECTION_CREATE = (
    "mutation call($input: CollectionInput!) { collectionCreate(input: $input) "
    "{ collection { id title } userErrors { field message } } }"
)

BULK_OPERATION_RUN_MUTATION = """
mutation bulkOperationRunMutation($mutation: String!, $stagedUploadPath: String!) {
  bulkOperationRunMutation(mutation: $mutation, stagedUploadPath: $stagedUploadPath) {
    bulkOperation {
      id
      status
      createdAt
    }
    userErrors {
      field
      message
    }
  }
}
"""

_BULK_OPERATION_FIELDS = """
      id
      status
      errorCode
      createdAt
      completedAt
      objectCount
      fileSize
      url
      partialDataUrl
"""

BULK_OPERATION_BY_ID = (
    """
query bulkOperation($id: ID!) {
  node(id: $id) {
    ... on BulkOperation {"""
    + _BULK_OPERATION_FIELDS
    + """    }
  }
}
"""
)

CURRENT_BULK_OPERATION = (
    """
query currentBulkOperation {
  currentBulkOperation(type: MUTATION) {"""
    + _BULK_OPERATION_FIELDS
    + """  }
}
"""
)

ACTIVE_SUBSCRIPTIONS = """
query activeSubscriptions {
  currentAppInstallation {
    activeSubscriptions {
      id
      name
      status
      test
      createdAt
      currentPeriodEnd
      lineItems {
        id
        plan {
          pricingDetails {
            ... on AppRecurringPricing {
              price {
                amount
                currencyCode
              }
              interval
            }
          }
        }
      }
    }
  }
}
"""

SUBSCRIPTION_HISTORY = """
query appSubscriptionHistory($first: Int!, $after: String) {
  currentAppInstallation {
    allSubscriptions(first: $first, after: $after) {
      edges {
        cursor
        node {
          id
          name
          status
          createdAt
        }
      }
      pageInfo {
        hasNextPage
        hasPreviousPage
        startCursor
        endCursor
      }
    }
  }
}
"""
