"""Initial migration - Create all tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables for the LMS"""

    # Create users table
    op.create_table('users',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('email', sa.String(length=320), nullable=False),
    sa.Column('password', sa.String(length=255), nullable=False),
    sa.Column('phone', sa.String(length=20), nullable=True),
    sa.Column('avatar', sa.Text(), nullable=True),
    sa.Column('role', sa.Enum('STUDENT', 'TEACHER', 'ADMIN', name='userrole'), nullable=False),
    sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'SUSPENDED', name='userstatus'), nullable=False),
    sa.Column('isActive', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('emailVerified', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('lastLogin', sa.DateTime(), nullable=True),
    sa.Column('loginAttempts', sa.Integer(), server_default='0', nullable=False),
    sa.Column('lockedUntil', sa.DateTime(), nullable=True),
    sa.Column('approvalStatus', sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='approvalstatus'), nullable=False),
    sa.Column('commissionRate', sa.Float(), nullable=True),
    sa.Column('maxStudentsPerBatch', sa.Integer(), server_default='50', nullable=False),
    sa.Column('suspensionReason', sa.Text(), nullable=True),
    sa.Column('suspendedBy', sa.Integer(), nullable=True),
    sa.Column('suspendedAt', sa.DateTime(), nullable=True),
    sa.Column('totalEarnings', sa.Float(), server_default='0', nullable=False),
    sa.Column('availableForPayout', sa.Float(), server_default='0', nullable=False),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['suspendedBy'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_role'), 'users', ['role'], unique=False)

    # Create courses table
    op.create_table('courses',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('slug', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('shortDescription', sa.String(length=500), nullable=True),
    sa.Column('thumbnail', sa.Text(), nullable=True),
    sa.Column('price', sa.Float(), server_default='0', nullable=False),
    sa.Column('currency', sa.String(length=3), server_default='INR', nullable=False),
    sa.Column('category', sa.Enum(
        'MATHEMATICS', 'PHYSICS', 'CHEMISTRY', 'BIOLOGY', 'ENGLISH', 'COMPUTER_SCIENCE', 'ECONOMICS',
        'HISTORY', 'GEOGRAPHY', 'ART', 'MUSIC', 'PROGRAMMING', 'OTHER', name='coursecategory'), nullable=False),
    sa.Column('level', sa.Enum('BEGINNER', 'INTERMEDIATE', 'ADVANCED', 'ALL_LEVELS', name='courselevel'), nullable=False),
    sa.Column('duration', sa.Integer(), nullable=True),
    sa.Column('language', sa.String(length=50), server_default='English', nullable=False),
    sa.Column('tags', sa.JSON(), nullable=False),
    sa.Column('rating', sa.Float(), server_default='0', nullable=False),
    sa.Column('totalRatings', sa.Integer(), server_default='0', nullable=False),
    sa.Column('studentsEnrolled', sa.Integer(), server_default='0', nullable=False),
    sa.Column('studentsCompleted', sa.Integer(), server_default='0', nullable=False),
    sa.Column('isActive', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('isPublished', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('teacherId', sa.Integer(), nullable=False),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['teacherId'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_courses_slug'), 'courses', ['slug'], unique=True)
    op.create_index(op.f('ix_courses_category'), 'courses', ['category'], unique=False)
    op.create_index(op.f('ix_courses_teacherId'), 'courses', ['teacherId'], unique=False)

    # Create batches table
    op.create_table('batches',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('courseId', sa.Integer(), nullable=False),
    sa.Column('teacherId', sa.Integer(), nullable=False),
    sa.Column('createdBy', sa.Integer(), nullable=True),
    sa.Column('studentLimit', sa.Integer(), server_default='30', nullable=False),
    sa.Column('enrollmentType', sa.Enum('OPEN', 'INVITE_ONLY', 'APPROVAL_REQUIRED', name='enrollmenttype'), nullable=False),
    sa.Column('enrollmentFee', sa.Float(), server_default='0', nullable=False),
    sa.Column('startDate', sa.DateTime(), nullable=False),
    sa.Column('endDate', sa.DateTime(), nullable=False),
    sa.Column('schedule', sa.JSON(), nullable=False),
    sa.Column('materials', sa.JSON(), nullable=False),
    sa.Column('isActive', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('settings', sa.JSON(), nullable=False),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['courseId'], ['courses.id'], ),
    sa.ForeignKeyConstraint(['teacherId'], ['users.id'], ),
    sa.ForeignKeyConstraint(['createdBy'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_batches_courseId'), 'batches', ['courseId'], unique=False)
    op.create_index(op.f('ix_batches_teacherId'), 'batches', ['teacherId'], unique=False)

    # Create batch_enrollments table
    op.create_table('batch_enrollments',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('batchId', sa.Integer(), nullable=False),
    sa.Column('studentId', sa.Integer(), nullable=False),
    sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'COMPLETED', 'DROPPED', name='enrollmentstatus'), nullable=False),
    sa.Column('progress', sa.Integer(), server_default='0', nullable=False),
    sa.Column('enrolledAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('completedAt', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['batchId'], ['batches.id'], ),
    sa.ForeignKeyConstraint(['studentId'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('batchId', 'studentId', name='uq_batch_enrollment')
    )
    op.create_index(op.f('ix_batch_enrollments_batchId'), 'batch_enrollments', ['batchId'], unique=False)
    op.create_index(op.f('ix_batch_enrollments_studentId'), 'batch_enrollments', ['studentId'], unique=False)

    # Create payments table
    op.create_table('payments',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('orderId', sa.String(length=100), nullable=False),
    sa.Column('gatewayPaymentId', sa.String(length=100), nullable=True),
    sa.Column('gatewaySignature', sa.String(length=255), nullable=True),
    sa.Column('gatewayOrderId', sa.String(length=100), nullable=True),
    sa.Column('studentId', sa.Integer(), nullable=False),
    sa.Column('teacherId', sa.Integer(), nullable=False),
    sa.Column('batchId', sa.Integer(), nullable=False),
    sa.Column('courseId', sa.Integer(), nullable=True),
    sa.Column('amount', sa.Float(), nullable=False),
    sa.Column('currency', sa.Enum('INR', 'USD', 'EUR', name='currency'), nullable=False),
    sa.Column('originalAmount', sa.Float(), nullable=True),
    sa.Column('discountAmount', sa.Float(), server_default='0', nullable=False),
    sa.Column('paymentMethod', sa.Enum('CARD', 'NETBANKING', 'WALLET', 'UPI', 'EMI', 'CASHFREE', name='paymentmethod'), nullable=True),
    sa.Column('paymentGateway', sa.Enum('RAZORPAY', 'CASHFREE', name='paymentgateway'), nullable=False),
    sa.Column('source', sa.Enum('PLATFORM', 'TEACHER', name='paymentsource'), nullable=False),
    sa.Column('commissionRate', sa.Float(), nullable=False),
    sa.Column('platformFee', sa.Float(), nullable=False),
    sa.Column('teacherEarnings', sa.Float(), nullable=False),
    sa.Column('status', sa.Enum('CREATED', 'PAID', 'FAILED', 'CANCELLED', 'REFUNDED', 'PARTIAL_REFUND', name='paymentstatus'), nullable=False),
    sa.Column('failureReason', sa.Text(), nullable=True),
    sa.Column('retryCount', sa.Integer(), server_default='0', nullable=False),
    sa.Column('expiresAt', sa.DateTime(), nullable=True),
    sa.Column('paidAt', sa.DateTime(), nullable=True),
    sa.Column('failedAt', sa.DateTime(), nullable=True),
    sa.Column('cancelledAt', sa.DateTime(), nullable=True),
    sa.Column('refundAmount', sa.Float(), server_default='0', nullable=False),
    sa.Column('refundReason', sa.Text(), nullable=True),
    sa.Column('refundId', sa.String(length=100), nullable=True),
    sa.Column('refundedAt', sa.DateTime(), nullable=True),
    sa.Column('gatewayResponse', sa.JSON(), nullable=True),
    sa.Column('paymentLink', sa.Text(), nullable=True),
    sa.Column('receipt', sa.String(length=100), nullable=False),
    sa.Column('notes', sa.JSON(), nullable=True),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['studentId'], ['users.id'], ),
    sa.ForeignKeyConstraint(['teacherId'], ['users.id'], ),
    sa.ForeignKeyConstraint(['batchId'], ['batches.id'], ),
    sa.ForeignKeyConstraint(['courseId'], ['courses.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payments_orderId'), 'payments', ['orderId'], unique=True)
    op.create_index(op.f('ix_payments_gatewayPaymentId'), 'payments', ['gatewayPaymentId'], unique=False)
    op.create_index(op.f('ix_payments_studentId'), 'payments', ['studentId'], unique=False)
    op.create_index(op.f('ix_payments_teacherId'), 'payments', ['teacherId'], unique=False)
    op.create_index(op.f('ix_payments_batchId'), 'payments', ['batchId'], unique=False)
    op.create_index(op.f('ix_payments_status'), 'payments', ['status'], unique=False)

    # Create teacher_bank_accounts table
    op.create_table('teacher_bank_accounts',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('teacherId', sa.Integer(), nullable=False),
    sa.Column('bankName', sa.String(length=100), nullable=False),
    sa.Column('accountHolderName', sa.String(length=100), nullable=False),
    sa.Column('accountNumber', sa.String(length=20), nullable=False),
    sa.Column('ifscCode', sa.String(length=11), nullable=False),
    sa.Column('branchName', sa.String(length=100), nullable=True),
    sa.Column('accountType', sa.Enum('SAVINGS', 'CURRENT', name='bankaccounttype'), nullable=False),
    sa.Column('isDefault', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('status', sa.Enum('PENDING', 'VERIFIED', 'REJECTED', name='bankaccountstatus'), nullable=False),
    sa.Column('verificationDetails', sa.JSON(), nullable=True),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['teacherId'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('teacherId', 'accountNumber', name='uq_teacher_account_number')
    )
    op.create_index(op.f('ix_teacher_bank_accounts_teacherId'), 'teacher_bank_accounts', ['teacherId'], unique=False)

    # Create payouts table
    op.create_table('payouts',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('teacherId', sa.Integer(), nullable=False),
    sa.Column('amount', sa.Float(), nullable=False),
    sa.Column('status', sa.Enum('REQUESTED', 'APPROVED', 'PROCESSING', 'COMPLETED', 'REJECTED', 'CANCELLED', name='payoutstatus'), nullable=False),
    sa.Column('paymentMethod', sa.Enum('BANK_TRANSFER', 'UPI', 'PAYTM', 'PHONEPE', name='payoutmethod'), nullable=False),
    sa.Column('paymentDetails', sa.JSON(), nullable=True),
    sa.Column('bankAccountId', sa.Integer(), nullable=True),
    sa.Column('transactionId', sa.String(length=255), nullable=True),
    sa.Column('note', sa.String(length=500), nullable=True),
    sa.Column('rejectionReason', sa.Text(), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=True),
    sa.Column('requestedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('approvedAt', sa.DateTime(), nullable=True),
    sa.Column('processedAt', sa.DateTime(), nullable=True),
    sa.Column('completedAt', sa.DateTime(), nullable=True),
    sa.Column('rejectedAt', sa.DateTime(), nullable=True),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['teacherId'], ['users.id'], ),
    sa.ForeignKeyConstraint(['bankAccountId'], ['teacher_bank_accounts.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payouts_teacherId'), 'payouts', ['teacherId'], unique=False)
    op.create_index(op.f('ix_payouts_status'), 'payouts', ['status'], unique=False)

    # Create live_sessions table
    op.create_table('live_sessions',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('batchId', sa.Integer(), nullable=False),
    sa.Column('teacherId', sa.Integer(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('meetingId', sa.String(length=100), nullable=False),
    sa.Column('meetingLink', sa.Text(), nullable=False),
    sa.Column('passcode', sa.String(length=50), nullable=True),
    sa.Column('startTime', sa.DateTime(), nullable=False),
    sa.Column('endTime', sa.DateTime(), nullable=True),
    sa.Column('duration', sa.Integer(), server_default='60', nullable=False),
    sa.Column('status', sa.Enum('SCHEDULED', 'LIVE', 'ENDED', 'CANCELLED', name='livesessionstatus'), nullable=False),
    sa.Column('recordingUrl', sa.Text(), nullable=True),
    sa.Column('isRecorded', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('settings', sa.JSON(), nullable=True),
    sa.Column('reminderSentAt', sa.DateTime(), nullable=True),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['batchId'], ['batches.id'], ),
    sa.ForeignKeyConstraint(['teacherId'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('meetingId')
    )
    op.create_index(op.f('ix_live_sessions_batchId'), 'live_sessions', ['batchId'], unique=False)
    op.create_index(op.f('ix_live_sessions_teacherId'), 'live_sessions', ['teacherId'], unique=False)
    op.create_index(op.f('ix_live_sessions_startTime'), 'live_sessions', ['startTime'], unique=False)
    op.create_index(op.f('ix_live_sessions_status'), 'live_sessions', ['status'], unique=False)

    # Create notifications table
    op.create_table('notifications',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('message', sa.String(length=1000), nullable=False),
    sa.Column('recipientId', sa.Integer(), nullable=False),
    sa.Column('senderId', sa.Integer(), nullable=True),
    sa.Column('type', sa.Enum(
        'CLASS_REMINDER', 'ASSIGNMENT_DUE', 'GRADE_RELEASED', 'PAYMENT_RECEIVED', 'PAYOUT_APPROVED',
        'PAYOUT_COMPLETED', 'PAYOUT_REJECTED', 'BATCH_JOINED', 'ACHIEVEMENT_EARNED', 'SYSTEM_ANNOUNCEMENT',
        'COURSE_UPDATE', 'LIVE_CLASS', 'ASSESSMENT_REMINDER', 'PAYMENT_REMINDER', 'WELCOME', 'PROFILE_UPDATE',
        name='notificationtype'), nullable=False),
    sa.Column('category', sa.Enum('ACADEMIC', 'FINANCIAL', 'SOCIAL', 'SYSTEM', 'ACHIEVEMENT', name='notificationcategory'), nullable=False),
    sa.Column('priority', sa.Enum('LOW', 'MEDIUM', 'HIGH', 'URGENT', name='notificationpriority'), nullable=False),
    sa.Column('relatedCourseId', sa.Integer(), nullable=True),
    sa.Column('relatedBatchId', sa.Integer(), nullable=True),
    sa.Column('relatedPaymentId', sa.Integer(), nullable=True),
    sa.Column('channels', sa.JSON(), nullable=False),
    sa.Column('status', sa.Enum('PENDING', 'SENT', 'DELIVERED', 'READ', 'FAILED', name='notificationstatus'), nullable=False),
    sa.Column('scheduledFor', sa.DateTime(), nullable=True),
    sa.Column('sentAt', sa.DateTime(), nullable=True),
    sa.Column('deliveredAt', sa.DateTime(), nullable=True),
    sa.Column('isRead', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('readAt', sa.DateTime(), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=True),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['recipientId'], ['users.id'], ),
    sa.ForeignKeyConstraint(['senderId'], ['users.id'], ),
    sa.ForeignKeyConstraint(['relatedCourseId'], ['courses.id'], ),
    sa.ForeignKeyConstraint(['relatedBatchId'], ['batches.id'], ),
    sa.ForeignKeyConstraint(['relatedPaymentId'], ['payments.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_recipientId'), 'notifications', ['recipientId'], unique=False)
    op.create_index(op.f('ix_notifications_senderId'), 'notifications', ['senderId'], unique=False)
    op.create_index(op.f('ix_notifications_type'), 'notifications', ['type'], unique=False)
    op.create_index(op.f('ix_notifications_status'), 'notifications', ['status'], unique=False)
    op.create_index(op.f('ix_notifications_scheduledFor'), 'notifications', ['scheduledFor'], unique=False)
    op.create_index(op.f('ix_notifications_isRead'), 'notifications', ['isRead'], unique=False)
    op.create_index(op.f('ix_notifications_createdAt'), 'notifications', ['createdAt'], unique=False)

    # Create notification_preferences table
    op.create_table('notification_preferences',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('userId', sa.Integer(), nullable=False),
    sa.Column('emailEnabled', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('pushEnabled', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('smsEnabled', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('inAppEnabled', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('mutedTypes', sa.JSON(), nullable=False),
    sa.Column('updatedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['userId'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('userId')
    )

    # Create device_tokens table
    op.create_table('device_tokens',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('userId', sa.Integer(), nullable=False),
    sa.Column('token', sa.String(length=500), nullable=False),
    sa.Column('platform', sa.String(length=20), server_default='web', nullable=False),
    sa.Column('isActive', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('createdAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('lastUsedAt', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['userId'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('token')
    )
    op.create_index(op.f('ix_device_tokens_userId'), 'device_tokens', ['userId'], unique=False)


def downgrade() -> None:
    """Drop all tables"""
    op.drop_table('device_tokens')
    op.drop_table('notification_preferences')
    op.drop_table('notifications')
    op.drop_table('live_sessions')
    op.drop_table('payouts')
    op.drop_table('teacher_bank_accounts')
    op.drop_table('payments')
    op.drop_table('batch_enrollments')
    op.drop_table('batches')
    op.drop_table('courses')
    op.drop_table('users')
