"""
XML Schema of the MuiDB document format.
"""

from lxml import etree

from .constants import MUIDB_NAMESPACE

MUIDB_SCHEMA = f'''<?xml version="1.0" encoding="utf-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns="{MUIDB_NAMESPACE}"
           targetNamespace="{MUIDB_NAMESPACE}"
           elementFormDefault="qualified"
           attributeFormDefault="unqualified">

  <xs:simpleType name="nonEmptyString">
    <xs:restriction base="xs:string">
      <xs:minLength value="1"/>
    </xs:restriction>
  </xs:simpleType>

  <xs:simpleType name="stateType">
    <xs:restriction base="xs:string">
      <xs:enumeration value="new"/>
      <xs:enumeration value="translated"/>
      <xs:enumeration value="reviewed"/>
      <xs:enumeration value="final"/>
    </xs:restriction>
  </xs:simpleType>

  <xs:simpleType name="designerType">
    <xs:restriction base="xs:string">
      <xs:enumeration value="internal"/>
      <xs:enumeration value="public"/>
    </xs:restriction>
  </xs:simpleType>

  <xs:complexType name="targetFileType">
    <xs:simpleContent>
      <xs:extension base="nonEmptyString">
        <xs:attribute name="lang" type="xs:string"/>
        <xs:attribute name="designer" type="designerType"/>
      </xs:extension>
    </xs:simpleContent>
  </xs:complexType>

  <xs:complexType name="settingsType">
    <xs:sequence>
      <xs:element name="target-file" type="targetFileType" minOccurs="0" maxOccurs="unbounded"/>
    </xs:sequence>
    <xs:attribute name="base-name" type="xs:string"/>
    <xs:attribute name="languages" type="xs:string"/>
    <xs:attribute name="code-namespace" type="xs:string"/>
    <xs:attribute name="project-title" type="xs:string"/>
  </xs:complexType>

  <xs:complexType name="commentType">
    <xs:simpleContent>
      <xs:extension base="xs:string">
        <xs:attribute name="lang" type="xs:string"/>
      </xs:extension>
    </xs:simpleContent>
  </xs:complexType>

  <xs:complexType name="textType">
    <xs:simpleContent>
      <xs:extension base="xs:string">
        <xs:attribute name="lang" type="xs:string"/>
        <xs:attribute name="state" type="stateType"/>
      </xs:extension>
    </xs:simpleContent>
  </xs:complexType>

  <xs:complexType name="itemType">
    <xs:sequence>
      <xs:element name="comment" type="commentType" minOccurs="0" maxOccurs="1"/>
      <xs:element name="text" type="textType" minOccurs="0" maxOccurs="unbounded"/>
    </xs:sequence>
    <xs:attribute name="id" type="nonEmptyString" use="required"/>
  </xs:complexType>

  <xs:complexType name="itemsType">
    <xs:sequence>
      <xs:element name="item" type="itemType" minOccurs="0" maxOccurs="unbounded"/>
    </xs:sequence>
  </xs:complexType>

  <xs:element name="muidb">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="settings" type="settingsType"/>
        <xs:element name="items" type="itemsType"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
'''

_schema = None


def get_schema() -> etree.XMLSchema:
    """Compiled MuiDB schema (built on first use)."""
    global _schema
    if _schema is None:
        _schema = etree.XMLSchema(etree.fromstring(MUIDB_SCHEMA.encode('utf-8')))
    return _schema
