"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import Mock
from typing import Dict, Optional

import requests
from requests.structures import CaseInsensitiveDict

from sap_sf.odata.entity_provider import EntityProvider
from sap_sf.odata.metadata import parse_metadata


SAMPLE_METADATA_XML = """<?xml version="1.0" encoding="utf-8"?>
<edmx:Edmx Version="1.0" xmlns:edmx="http://schemas.microsoft.com/ado/2007/06/edmx"
    xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"
    xmlns:sap="http://www.sap.com/Protocols/SAPData">
  <edmx:DataServices m:DataServiceVersion="2.0">
    <Schema Namespace="SFOData" xmlns="http://schemas.microsoft.com/ado/2008/09/edm">
      <EntityType Name="User" sap:label="User">
        <Key>
          <PropertyRef Name="userId"/>
        </Key>
        <Property Name="userId" Type="Edm.String" Nullable="false" MaxLength="100"
                  sap:label="User ID" sap:required-in-filter="true" sap:filter-restriction="single-value"/>
        <Property Name="username" Type="Edm.String" MaxLength="100" Unicode="true" sap:label="Username"/>
        <Property Name="salary" Type="Edm.Decimal" Precision="15" Scale="2" DefaultValue="0"/>
        <Property Name="hireDate" Type="Edm.DateTime" sap:display-format="Date"/>
        <Property Name="homeAddress" Type="SFOData.Address"/>
        <NavigationProperty Name="manager" Relationship="SFOData.User_manager"
                            FromRole="User_manager_Source" ToRole="User_manager_Target" sap:label="Manager"/>
        <NavigationProperty Name="empInfo" Relationship="SFOData.User_empInfo"
                            FromRole="User_empInfo_Source" ToRole="User_empInfo_Target"/>
      </EntityType>
      <EntityType Name="EmpEmployment">
        <Key>
          <PropertyRef Name="personIdExternal"/>
          <PropertyRef Name="userId"/>
        </Key>
        <Property Name="personIdExternal" Type="Edm.String" Nullable="false"/>
        <Property Name="userId" Type="Edm.String" Nullable="false"/>
        <Property Name="startDate" Type="Edm.DateTime"/>
        <NavigationProperty Name="jobInfoNav" Relationship="SFOData.EmpEmployment_jobInfoNav"
                            FromRole="EmpEmployment_jobInfoNav_Source" ToRole="EmpEmployment_jobInfoNav_Target"/>
      </EntityType>
      <EntityType Name="EmpJob">
        <Key>
          <PropertyRef Name="seqNumber"/>
        </Key>
        <Property Name="seqNumber" Type="Edm.Int64" Nullable="false"/>
        <Property Name="jobTitle" Type="Edm.String" MaxLength="Max"/>
      </EntityType>
      <ComplexType Name="Address">
        <Property Name="street" Type="Edm.String"/>
        <Property Name="city" Type="Edm.String"/>
        <Property Name="previous" Type="SFOData.Address"/>
      </ComplexType>
      <Association Name="User_manager">
        <End Type="SFOData.User" Multiplicity="*" Role="User_manager_Source"/>
        <End Type="SFOData.User" Multiplicity="0..1" Role="User_manager_Target"/>
      </Association>
      <Association Name="User_empInfo">
        <End Type="SFOData.User" Multiplicity="1" Role="User_empInfo_Source"/>
        <End Type="SFOData.EmpEmployment" Multiplicity="1" Role="User_empInfo_Target"/>
      </Association>
      <Association Name="EmpEmployment_jobInfoNav">
        <End Type="SFOData.EmpEmployment" Multiplicity="1" Role="EmpEmployment_jobInfoNav_Source"/>
        <End Type="SFOData.EmpJob" Multiplicity="*" Role="EmpEmployment_jobInfoNav_Target"/>
      </Association>
      <EntityContainer Name="EntityContainer" m:IsDefaultEntityContainer="true">
        <EntitySet Name="User" EntityType="SFOData.User"/>
        <EntitySet Name="EmpEmployment" EntityType="SFOData.EmpEmployment"/>
        <EntitySet Name="EmpJob" EntityType="SFOData.EmpJob"/>
      </EntityContainer>
      <EntityContainer Name="Archive">
        <EntitySet Name="JobArchive" EntityType="SFOData.EmpJob"/>
      </EntityContainer>
    </Schema>
  </edmx:DataServices>
</edmx:Edmx>"""


def make_response(
    status: int = 200,
    body: Optional[bytes] = b"",
    headers: Optional[Dict[str, str]] = None,
    reason: str = "OK",
) -> requests.Response:
    """Build a real requests.Response without any network."""
    r = requests.Response()
    r.status_code = status
    r.reason = reason
    r._content = body
    r._content_consumed = True
    r.headers = CaseInsensitiveDict(headers or {})
    r.url = "https://test.example.com/odata/v2"
    return r


@pytest.fixture
def sample_metadata_xml():
    """Sample SuccessFactors $metadata XML."""
    return SAMPLE_METADATA_XML


@pytest.fixture
def edm(sample_metadata_xml):
    return parse_metadata(sample_metadata_xml)


@pytest.fixture
def provider(edm):
    return EntityProvider(edm)


@pytest.fixture
def mock_http_session():
    """Create a mock requests.Session."""
    session = Mock()
    session.get = Mock(return_value=make_response())
    return session


@pytest.fixture
def sleeps():
    """Records the waits requested by the retry loop instead of sleeping."""
    return []


@pytest.fixture
def mock_transporter():
    """Create a mock SuccessFactorsTransporter."""
    transporter = Mock()
    transporter.call = Mock()
    transporter.call_with_retry = Mock()
    return transporter
